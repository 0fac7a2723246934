# src/config/settings.py — v1
"""Typed configuration loaded from .env / UPGRADER_* variables via pydantic-settings.

Single source of truth for project paths, the upgrade path, command
timeouts and the text substitutions applied to the CI workflow.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from toolchain_upgrader.core.models import UpgradeError, UpgradeStep


class ConfigurationError(UpgradeError):
    """Raised when configuration is internally inconsistent."""


DEFAULT_UPGRADE_PATH: tuple[UpgradeStep, ...] = (
    UpgradeStep(
        target_version="5.0.0",
        description="React Scripts 5.0.0 - Major version with Webpack 5",
    ),
    UpgradeStep(
        target_version="5.0.1",
        description="React Scripts 5.0.1 - Latest stable in 5.x",
    ),
)


class Settings(BaseSettings):
    """Upgrader settings loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="UPGRADER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Project layout ===
    project_dir: Path = Path(".")
    manifest_name: str = "package.json"
    lock_name: str = "package-lock.json"
    backup_suffix: str = ".backup"
    node_modules_dir: str = "node_modules"
    build_dir: str = "build"
    workflow_path: str = ".github/workflows/deploy.yml"

    # === Logging ===
    log_file: Path = Path("upgrade.log")
    log_console_format: Literal["text", "json"] = "text"

    # === Package manager ===
    package_manager: str = "npm"
    target_package: str = "react-scripts"
    install_flags: list[str] = Field(default_factory=lambda: ["--legacy-peer-deps"])
    build_script: str = "build"
    start_script: str = "start"

    # === Upgrade path ===
    upgrade_path: list[UpgradeStep] = Field(
        default_factory=lambda: list(DEFAULT_UPGRADE_PATH)
    )

    # === Manifest edits ===
    homepage_url: str = "https://shepsci.github.io/claude-sequencer64"
    browserslist_production: list[str] = Field(
        default_factory=lambda: [">0.2%", "not dead", "not op_mini all"]
    )
    browserslist_development: list[str] = Field(
        default_factory=lambda: [
            "last 1 chrome version",
            "last 1 firefox version",
            "last 1 safari version",
        ]
    )

    # === Timeouts (seconds) ===
    target_install_timeout: float = 300.0
    full_install_timeout: float = 300.0
    final_install_timeout: float = 180.0
    build_timeout: float = 300.0
    start_check_timeout: float = 10.0

    # === Build environment ===
    build_env: dict[str, str] = Field(default_factory=lambda: {"CI": "false"})
    legacy_env: dict[str, str] = Field(
        default_factory=lambda: {"NODE_OPTIONS": "--openssl-legacy-provider"}
    )
    build_preview_limit: int = 10

    # === CI workflow patch ===
    workflow_node_version_from: str = "16"
    workflow_node_version_to: str = "18"
    workflow_legacy_export: str = "export NODE_OPTIONS=--openssl-legacy-provider"
    workflow_rename_from: str = "claude-sequencer"
    workflow_rename_to: str = "claude-sequencer64"

    # --- Validators ---

    @field_validator(
        "target_install_timeout",
        "full_install_timeout",
        "final_install_timeout",
        "build_timeout",
        "start_check_timeout",
    )
    @classmethod
    def validate_timeout(cls, v: float) -> float:  # noqa: N805
        """Timeouts must be strictly positive."""
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not self.upgrade_path:
            errors.append("UPGRADE_PATH must contain at least one step")

        if self.manifest_name == self.lock_name:
            errors.append("MANIFEST_NAME and LOCK_NAME must differ")

        if not self.backup_suffix:
            errors.append("BACKUP_SUFFIX must not be empty")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def root(self) -> Path:
        return self.project_dir.expanduser()

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest_name

    @property
    def lock_path(self) -> Path:
        return self.root / self.lock_name

    @property
    def manifest_backup_path(self) -> Path:
        return self.root / f"{self.manifest_name}{self.backup_suffix}"

    @property
    def lock_backup_path(self) -> Path:
        return self.root / f"{self.lock_name}{self.backup_suffix}"

    @property
    def node_modules_path(self) -> Path:
        return self.root / self.node_modules_dir

    @property
    def build_output_path(self) -> Path:
        return self.root / self.build_dir

    @property
    def workflow_file(self) -> Path:
        return self.root / self.workflow_path

    @property
    def log_path(self) -> Path:
        """Log artifact path; relative paths resolve against the project."""
        path = self.log_file.expanduser()
        return path if path.is_absolute() else self.root / path


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (CLI flags or tests).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
