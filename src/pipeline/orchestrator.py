# src/pipeline/orchestrator.py — v1
"""Upgrade orchestrator — drives the version-upgrade state machine.

    INIT → BACKED_UP → MANIFEST_PATCHED
      → per step: CLEANING → INSTALLING_TARGET → INSTALLING_ALL → VERIFYING
                  → STEP_SUCCESS | STEP_FAILED
      → DONE | FAILED

A failed step is recoverable: the snapshot is restored and the next
version in the path is tried. The first step whose final verification
passes ends the run; a failed final verification fails the whole run.
Restoring the snapshot after a failed run is the caller's job.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from toolchain_upgrader.core.models import BuildResult, BuildStrategy, UpgradeStep
from toolchain_upgrader.core.process import ProcessRunner
from toolchain_upgrader.pipeline.build_verifier import BuildVerifier
from toolchain_upgrader.pipeline.installer import DependencyInstaller
from toolchain_upgrader.pipeline.state import RunState, StepAttempt, UpgradeState
from toolchain_upgrader.storage.backup import BackupManager
from toolchain_upgrader.storage.manifest import ManifestDocument, ManifestError, update_manifest
from toolchain_upgrader.storage.workflow import WorkflowPatcher

if TYPE_CHECKING:
    from toolchain_upgrader.config.settings import Settings
    from toolchain_upgrader.logging.logger import UpgradeLogger

logger = logging.getLogger(__name__)


class UpgradeOrchestrator:
    """Top-level driver for one upgrade run.

    Collaborators default to the settings-derived implementations and can
    be injected individually (tests, alternative runners).

    Args:
        settings: Upgrader settings.
        log: Run logger shared with every component.
        runner: External process runner.
        backup: Backup manager.
        verifier: Build verifier.
        installer: Dependency installer.
        workflow: CI workflow patcher.
    """

    def __init__(
        self,
        settings: Settings,
        log: UpgradeLogger,
        *,
        runner: ProcessRunner | None = None,
        backup: BackupManager | None = None,
        verifier: BuildVerifier | None = None,
        installer: DependencyInstaller | None = None,
        workflow: WorkflowPatcher | None = None,
    ) -> None:
        self._settings = settings
        self.log = log
        self.runner = runner or ProcessRunner(cwd=settings.root)
        self.backup = backup or BackupManager.from_settings(settings, log)
        self.verifier = verifier or BuildVerifier.from_settings(settings, log, self.runner)
        self.installer = installer or DependencyInstaller.from_settings(
            settings, log, self.runner
        )
        self.workflow = workflow or WorkflowPatcher.from_settings(settings, log)
        self.upgrade_path: tuple[UpgradeStep, ...] = tuple(settings.upgrade_path)
        self.state = RunState()

    @property
    def package(self) -> str:
        return self._settings.target_package

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def perform_upgrade(self) -> bool:
        """Run the full upgrade. Returns True iff the run reached DONE."""
        start_time = time.monotonic()
        self.log.log(f"=== Starting {self.package} upgrade process ===")

        if not self.backup.create():
            self.log.error("Failed to create backup - aborting")
            self.state.transition(UpgradeState.FAILED)
            return False
        self.state.transition(UpgradeState.BACKED_UP)

        self.update_homepage()
        self.update_browserslist()
        self.state.transition(UpgradeState.MANIFEST_PATCHED)

        for step in self.upgrade_path:
            with self.log.step_context(step.target_version):
                self.log.log(f"--- Attempting upgrade to {step.label} ---")
                attempt = self.upgrade_to_version(step)

                if attempt.passed:
                    self.log.success(
                        f"Successfully upgraded to {self.package} {step.target_version}"
                    )
                    succeeded = self._finalize(step)
                    logger.info(
                        "Upgrade run finished in %.1fs (succeeded=%s)",
                        time.monotonic() - start_time, succeeded,
                    )
                    return succeeded

                self.log.warn(
                    f"Upgrade to {step.target_version} failed, trying fallback..."
                )
                attempt.restored = bool(self.backup.restore())
                self.state.restore_count += 1
                self.installer.install_all(timeout=self._settings.final_install_timeout)

        self.log.error("All upgrade attempts failed")
        self.state.transition(UpgradeState.FAILED)
        logger.info("Upgrade run failed after %.1fs", time.monotonic() - start_time)
        return False

    def run_baseline(self, check_start: bool = False) -> bool:
        """Snapshot the project and check that the current build works."""
        self.log.log("Phase 1: Creating backup and testing baseline")
        if not self.backup.create():
            return False

        self.log.log("Testing current build to establish baseline...")
        if not self.verifier.test_build(BuildStrategy.LEGACY):
            self.log.error("Baseline build failed! Cannot proceed with upgrade.")
            return False

        if check_start and not self.verifier.test_start():
            self.log.error("Start script check failed! Cannot proceed with upgrade.")
            return False

        self.log.success("Baseline established - current build works")
        self.log.log("=== Upgrade test framework ready ===")
        self.log.log('Run "toolchain-upgrader upgrade" to proceed with upgrade')
        return True

    # ------------------------------------------------------------------
    # Manifest edits (best-effort)
    # ------------------------------------------------------------------

    def update_homepage(self) -> bool:
        self.log.log("Updating homepage URL for new repository name...")
        try:
            document = update_manifest(
                self._settings.manifest_path, homepage=self._settings.homepage_url
            )
        except Exception as exc:
            self.log.warn(f"Could not update homepage: {exc}")
            return False
        self.log.success(f"Homepage URL updated to {document.homepage}")
        return True

    def update_browserslist(self) -> bool:
        self.log.log("Checking for compatibility issues...")
        try:
            update_manifest(
                self._settings.manifest_path,
                browserslist={
                    "production": self._settings.browserslist_production,
                    "development": self._settings.browserslist_development,
                },
            )
        except Exception as exc:
            self.log.warn(f"Could not update browserslist: {exc}")
            return False
        self.log.success("Updated browserslist for compatibility")
        return True

    # ------------------------------------------------------------------
    # Per-step work
    # ------------------------------------------------------------------

    def upgrade_to_version(self, step: UpgradeStep) -> StepAttempt:
        """Clean, install and verify one candidate version."""
        version = step.target_version
        attempt = StepAttempt(version=version, description=step.description)
        self.state.attempts.append(attempt)
        self.log.log(f"Starting upgrade to {step.label}")

        self.state.transition(UpgradeState.CLEANING, version)
        self.installer.clean()

        self.state.transition(UpgradeState.INSTALLING_TARGET, version)
        if not self.installer.install_target(version):
            return self._fail_step(attempt, UpgradeState.INSTALLING_TARGET)

        self.state.transition(UpgradeState.INSTALLING_ALL, version)
        if not self.installer.install_all():
            return self._fail_step(attempt, UpgradeState.INSTALLING_ALL)
        self.log.success(f"{self.package} {version} installed")
        self._log_manifest_constraint()

        self.state.transition(UpgradeState.VERIFYING, version)
        self.log.log("Testing build after upgrade...")
        build = self.verify_build()
        if not build:
            self.log.error(f"Build failed with {self.package}@{version}")
            return self._fail_step(attempt, UpgradeState.VERIFYING)

        attempt.passed = True
        attempt.strategy = build.strategy
        self.state.transition(UpgradeState.STEP_SUCCESS, version)
        self.log.success(f"Build successful with {self.package}@{version}")
        return attempt

    def verify_build(self) -> BuildResult:
        """MODERN invocation first, LEGACY as fallback."""
        modern = self.verifier.test_build(BuildStrategy.MODERN)
        if modern:
            self.log.success("Build successful without legacy OpenSSL provider")
            return modern
        self.log.log("Build failed without legacy provider, trying with legacy provider...")
        return self.verifier.test_build(BuildStrategy.LEGACY)

    def _log_manifest_constraint(self) -> None:
        try:
            manifest = ManifestDocument.load(self._settings.manifest_path)
        except ManifestError as exc:
            self.log.warn(f"Could not read {self._settings.manifest_name}: {exc}")
            return
        constraint = manifest.dependency_version(self.package)
        if constraint is None:
            self.log.warn(f"{self.package} is not listed in {self._settings.manifest_name}")
        else:
            self.log.log(
                f"{self._settings.manifest_name} now requires {self.package} {constraint}"
            )

    def _fail_step(self, attempt: StepAttempt, stage: UpgradeState) -> StepAttempt:
        attempt.failed_at = stage
        self.state.transition(UpgradeState.STEP_FAILED, attempt.version)
        return attempt

    def _finalize(self, step: UpgradeStep) -> bool:
        self.workflow.patch()
        self.installer.install_all(timeout=self._settings.final_install_timeout)

        self.log.log("Performing final build test...")
        if not self.verifier.test_build(BuildStrategy.LEGACY):
            self.log.error("Final build test failed")
            self.state.transition(UpgradeState.FAILED, step.target_version)
            return False

        self.state.final_version = step.target_version
        self.state.transition(UpgradeState.DONE, step.target_version)
        self.log.success("Upgrade completed successfully!")
        self.log.log(f"Final version: {self.package} {step.target_version}")
        return True
