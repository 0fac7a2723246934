# src/storage/manifest.py — v1
"""Read-modify-write access to the project's package.json.

Edits are applied to the in-memory document first; the file is only
replaced once the whole document has been serialized, via a sibling temp
file and os.replace, so a failed edit never leaves a half-written manifest.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from toolchain_upgrader.core.models import UpgradeError

logger = logging.getLogger(__name__)

INDENT = 2


class ManifestError(UpgradeError):
    """Raised when the manifest is missing or is not a JSON object."""


class ManifestDocument:
    """In-memory package.json.

    Args:
        path: Manifest location on disk.
        data: Parsed JSON object (key order is preserved on save).
        trailing_newline: Whether the file ended with a newline when loaded.
    """

    def __init__(
        self,
        path: Path,
        data: dict[str, Any],
        trailing_newline: bool = False,
    ) -> None:
        self.path = path
        self.data = data
        self.trailing_newline = trailing_newline

    @classmethod
    def load(cls, path: Path) -> ManifestDocument:
        """Parse the manifest at ``path``.

        Raises:
            ManifestError: If the file is missing, unreadable or not an object.
        """
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ManifestError(f"Manifest {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ManifestError(f"Manifest {path} must contain a JSON object")
        return cls(path, data, trailing_newline=raw.endswith("\n"))

    # --- Fields ---

    @property
    def homepage(self) -> str | None:
        return self.data.get("homepage")

    @property
    def dependencies(self) -> dict[str, str]:
        return dict(self.data.get("dependencies") or {})

    @property
    def dev_dependencies(self) -> dict[str, str]:
        return dict(self.data.get("devDependencies") or {})

    @property
    def scripts(self) -> dict[str, str]:
        return dict(self.data.get("scripts") or {})

    def dependency_version(self, name: str) -> str | None:
        """Version constraint of ``name`` from dependencies or devDependencies."""
        return self.dependencies.get(name) or self.dev_dependencies.get(name)

    def has_script(self, name: str) -> bool:
        return name in self.scripts

    # --- Edits ---

    def set_homepage(self, url: str) -> None:
        self.data["homepage"] = url

    def set_browserslist(self, production: list[str], development: list[str]) -> None:
        self.data["browserslist"] = {
            "production": list(production),
            "development": list(development),
        }

    # --- Serialization ---

    def dumps(self) -> str:
        text = json.dumps(self.data, indent=INDENT, ensure_ascii=False)
        return text + "\n" if self.trailing_newline else text

    def save(self) -> None:
        """Atomically replace the manifest with the current document."""
        content = self.dumps()
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            if self.path.exists():
                shutil.copymode(self.path, tmp_name)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s (%d bytes)", self.path, len(content))


def update_manifest(path: Path, **edits: Any) -> ManifestDocument:
    """Load, apply ``set_<field>`` edits in order, then save once.

    Example:
        update_manifest(path, homepage="https://example.org/app")
    """
    document = ManifestDocument.load(path)
    for field, value in edits.items():
        setter = getattr(document, f"set_{field}", None)
        if setter is None:
            raise AttributeError(f"Unsupported manifest edit: {field!r}")
        if isinstance(value, dict):
            setter(**value)
        else:
            setter(value)
    document.save()
    return document
