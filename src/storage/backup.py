# src/storage/backup.py — v1
"""Snapshot / restore of the dependency manifest and its lock file.

The Backup Manager is the only writer of the backup copies. Exactly one
snapshot exists per run: create() overwrites it, it is never merged.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from toolchain_upgrader.core.models import OperationResult

if TYPE_CHECKING:
    from toolchain_upgrader.config.settings import Settings
    from toolchain_upgrader.logging.logger import UpgradeLogger


class BackupManager:
    """Byte-exact snapshot of manifest + optional lock file.

    Args:
        logger: Run logger.
        manifest_path: Live manifest file.
        lock_path: Live lock file (optional on disk).
        manifest_backup: Fixed backup path for the manifest.
        lock_backup: Fixed backup path for the lock file.
    """

    def __init__(
        self,
        logger: UpgradeLogger,
        manifest_path: Path,
        lock_path: Path,
        manifest_backup: Path,
        lock_backup: Path,
    ) -> None:
        self._logger = logger
        self.manifest_path = manifest_path
        self.lock_path = lock_path
        self.manifest_backup = manifest_backup
        self.lock_backup = lock_backup

    @property
    def exists(self) -> bool:
        """True when a manifest snapshot is on disk."""
        return self.manifest_backup.is_file()

    def create(self) -> OperationResult:
        """Snapshot the live files, replacing any previous snapshot."""
        self._logger.log(f"Creating {self.manifest_path.name} backup...")
        try:
            shutil.copyfile(self.manifest_path, self.manifest_backup)
            if self.lock_path.exists():
                shutil.copyfile(self.lock_path, self.lock_backup)
            elif self.lock_backup.exists():
                # Stale lock copy from an earlier snapshot must not be restored.
                self.lock_backup.unlink()
        except OSError as exc:
            message = f"Backup failed: {exc}"
            self._logger.error(message)
            return OperationResult.failed(message)

        self._logger.success("Backup created successfully")
        return OperationResult.succeeded("Backup created")

    def restore(self) -> OperationResult:
        """Copy the snapshot back over the live files.

        Files are copied before anything is logged.
        """
        if not self.exists:
            message = f"Restore failed: no backup at {self.manifest_backup}"
            self._logger.error(message)
            return OperationResult.failed(message)
        try:
            shutil.copyfile(self.manifest_backup, self.manifest_path)
            if self.lock_backup.exists():
                shutil.copyfile(self.lock_backup, self.lock_path)
        except OSError as exc:
            message = f"Restore failed: {exc}"
            self._logger.error(message)
            return OperationResult.failed(message)

        self._logger.success("Backup restored successfully")
        return OperationResult.succeeded("Backup restored")

    def cleanup(self) -> None:
        """Delete backup files. Failures are warnings only."""
        try:
            for path in (self.manifest_backup, self.lock_backup):
                if path.exists():
                    path.unlink()
            self._logger.log("Backup files cleaned up")
        except OSError as exc:
            self._logger.warn(f"Cleanup warning: {exc}")

    @classmethod
    def from_settings(cls, settings: Settings, logger: UpgradeLogger) -> BackupManager:
        return cls(
            logger,
            manifest_path=settings.manifest_path,
            lock_path=settings.lock_path,
            manifest_backup=settings.manifest_backup_path,
            lock_backup=settings.lock_backup_path,
        )
