# src/storage/workflow.py — v1
"""Textual patching of the CI workflow file.

The workflow is treated as opaque text. Changes are expressed as a fixed,
ordered list of named TextRule substitutions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from toolchain_upgrader.core.models import OperationResult

if TYPE_CHECKING:
    from toolchain_upgrader.config.settings import Settings
    from toolchain_upgrader.logging.logger import UpgradeLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextRule:
    """One regex substitution.

    Attributes:
        name: Short identifier used in logs.
        pattern: Regular expression.
        replacement: ``re.sub`` replacement string.
        count: Max replacements (0 = all).
    """

    name: str
    pattern: str
    replacement: str
    count: int = 0

    def apply(self, text: str) -> tuple[str, int]:
        """Return (new_text, number_of_substitutions)."""
        return re.subn(self.pattern, self.replacement, text, count=self.count)


def build_workflow_rules(settings: Settings) -> list[TextRule]:
    """Rules for moving the deploy workflow to the upgraded toolchain.

    Order matters: runtime version, legacy flag removal, then the rename.
    """
    rename_from = re.escape(settings.workflow_rename_from)
    return [
        TextRule(
            name="node-version",
            pattern=rf"node-version: ['\"]{re.escape(settings.workflow_node_version_from)}['\"]",
            replacement=f"node-version: '{settings.workflow_node_version_to}'",
            count=1,
        ),
        TextRule(
            name="drop-legacy-openssl",
            pattern=rf"{re.escape(settings.workflow_legacy_export)}\s*\n\s*",
            replacement="",
            count=1,
        ),
        TextRule(
            name="rename-path-token",
            # Word-boundary guard keeps repeat runs from renaming twice.
            pattern=rf"{rename_from}(?!\w)",
            replacement=settings.workflow_rename_to.replace("\\", r"\\"),
        ),
    ]


def apply_rules(text: str, rules: list[TextRule]) -> tuple[str, dict[str, int]]:
    """Apply ``rules`` in order.

    Returns:
        Tuple of (patched_text, substitutions per rule name).
    """
    counts: dict[str, int] = {}
    for rule in rules:
        text, counts[rule.name] = rule.apply(text)
    return text, counts


class WorkflowPatcher:
    """Apply workflow rules to the file on disk.

    Args:
        logger: Run logger.
        path: Workflow file (optional on disk).
        rules: Ordered substitutions.
    """

    def __init__(self, logger: UpgradeLogger, path: Path, rules: list[TextRule]) -> None:
        self._logger = logger
        self.path = path
        self.rules = rules

    def patch(self) -> OperationResult:
        """Rewrite the workflow. A missing file is not an error."""
        self._logger.log("Updating GitHub Actions workflow for the upgraded toolchain...")
        if not self.path.exists():
            self._logger.log(f"No workflow at {self.path}, skipping")
            return OperationResult.succeeded("No workflow file")
        try:
            original = self.path.read_text(encoding="utf-8")
            patched, counts = apply_rules(original, self.rules)
            if patched != original:
                self.path.write_text(patched, encoding="utf-8")
        except (OSError, UnicodeError, re.error) as exc:
            message = f"Could not update workflow: {exc}"
            self._logger.warn(message)
            return OperationResult.failed(message)

        logger.debug("Workflow substitutions: %s", counts)
        self._logger.success("GitHub Actions workflow updated")
        return OperationResult.succeeded(
            ", ".join(f"{name}={n}" for name, n in counts.items())
        )

    @classmethod
    def from_settings(cls, settings: Settings, logger: UpgradeLogger) -> WorkflowPatcher:
        return cls(logger, settings.workflow_file, build_workflow_rules(settings))
