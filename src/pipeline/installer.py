# src/pipeline/installer.py — v1
"""Dependency installation commands driven by the orchestrator.

Every method returns an OperationResult; failures are logged with the
full captured process output.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from toolchain_upgrader.core.models import CommandResult, OperationResult

if TYPE_CHECKING:
    from toolchain_upgrader.config.settings import Settings
    from toolchain_upgrader.core.process import ProcessRunner
    from toolchain_upgrader.logging.logger import UpgradeLogger


class DependencyInstaller:
    """Clean and install the project's dependencies.

    Args:
        logger: Run logger.
        runner: External process runner.
        package_manager: Package manager executable ("npm").
        target_package: Build-tool package being upgraded.
        install_flags: Extra flags for every install.
        node_modules: Installed-dependency directory.
        lock_path: Lock file removed before a fresh install.
        target_timeout: Timeout for the targeted install.
        full_timeout: Timeout for a full install.
    """

    def __init__(
        self,
        logger: UpgradeLogger,
        runner: ProcessRunner,
        *,
        package_manager: str,
        target_package: str,
        install_flags: Sequence[str],
        node_modules: Path,
        lock_path: Path,
        target_timeout: float,
        full_timeout: float,
    ) -> None:
        self._logger = logger
        self._runner = runner
        self.package_manager = package_manager
        self.target_package = target_package
        self.install_flags = list(install_flags)
        self.node_modules = node_modules
        self.lock_path = lock_path
        self.target_timeout = target_timeout
        self.full_timeout = full_timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, logger: UpgradeLogger, runner: ProcessRunner
    ) -> DependencyInstaller:
        return cls(
            logger,
            runner,
            package_manager=settings.package_manager,
            target_package=settings.target_package,
            install_flags=settings.install_flags,
            node_modules=settings.node_modules_path,
            lock_path=settings.lock_path,
            target_timeout=settings.target_install_timeout,
            full_timeout=settings.full_install_timeout,
        )

    def clean(self) -> OperationResult:
        """Remove installed dependencies and the lock file (best-effort)."""
        self._logger.log("Cleaning dependencies for fresh install...")
        try:
            if self.node_modules.is_dir():
                shutil.rmtree(self.node_modules)
            self.lock_path.unlink(missing_ok=True)
        except OSError as exc:
            message = f"Could not clean dependencies: {exc}"
            self._logger.warn(message)
            return OperationResult.failed(message)
        return OperationResult.succeeded("Dependencies cleaned")

    def install_target(self, version: str) -> OperationResult:
        """Install ``<target_package>@<version>``."""
        spec = f"{self.target_package}@{version}"
        self._logger.log(f"Installing {spec}...")
        result = self._runner.run(
            self.package_manager,
            ["install", spec, *self.install_flags],
            timeout=self.target_timeout,
        )
        return self._report(result, f"Installed {spec}", f"Installing {spec} failed")

    def install_all(self, timeout: float | None = None) -> OperationResult:
        """Install the full dependency set from the manifest."""
        self._logger.log("Installing all dependencies...")
        result = self._runner.run(
            self.package_manager,
            ["install", *self.install_flags],
            timeout=timeout or self.full_timeout,
        )
        return self._report(
            result, "Dependencies installed successfully", "Dependency installation failed"
        )

    def _report(self, result: CommandResult, ok_message: str, fail_message: str) -> OperationResult:
        if result.ok:
            self._logger.success(ok_message)
            return OperationResult.from_command(result, ok_message)
        self._logger.error(f"{fail_message}: {result.describe()}")
        self._logger.error(
            f"Error details: {result.stderr or result.stdout or 'No additional details'}"
        )
        return OperationResult.from_command(result, f"{fail_message}: {result.describe()}")
