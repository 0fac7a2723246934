# tests/unit/pipeline/test_unit_orchestrator.py — v1
"""Tests for pipeline/orchestrator.py — step ordering, fallback, rollback."""

from __future__ import annotations

import json

import pytest
from support import FakeRunner, installed_version, is_build, is_legacy

from toolchain_upgrader.core.models import BuildStrategy, LogLevel, UpgradeStep
from toolchain_upgrader.pipeline.orchestrator import UpgradeOrchestrator
from toolchain_upgrader.pipeline.state import UpgradeState


def scripted(fail_targets=(), fail_full_installs=(), builds=None) -> FakeRunner:
    """FakeRunner whose answers depend on the last targeted version.

    ``builds`` maps ``(version, "modern"|"legacy")`` to an exit code;
    anything unlisted succeeds.
    """
    builds = builds or {}
    current: dict[str, str | None] = {"version": None}

    def responder(call):
        version = installed_version(call)
        if version is not None:
            current["version"] = version
            return 1 if version in fail_targets else 0
        if is_build(call):
            key = (current["version"], "legacy" if is_legacy(call) else "modern")
            return builds.get(key, 0)
        if call.args[:1] == ["install"]:
            return 1 if current["version"] in fail_full_installs else 0
        return 0

    return FakeRunner(responder)


def _messages(run_log) -> list[str]:
    return [entry.message for entry in run_log.entries]


@pytest.fixture
def original_manifest(settings) -> bytes:
    return settings.manifest_path.read_bytes()


class TestPerformUpgrade:
    def test_first_step_wins(self, settings, run_log):
        runner = scripted()
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert orchestrator.perform_upgrade()
        assert orchestrator.state.current is UpgradeState.DONE
        assert orchestrator.state.final_version == "5.0.0"
        assert orchestrator.state.attempted_versions == ["5.0.0"]
        assert orchestrator.state.attempts[0].strategy is BuildStrategy.MODERN
        assert orchestrator.state.restore_count == 0
        assert "Final version: react-scripts 5.0.0" in _messages(run_log)

    def test_visits_states_in_order(self, settings, run_log):
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=scripted())
        orchestrator.perform_upgrade()
        assert orchestrator.state.visited() == [
            UpgradeState.BACKED_UP,
            UpgradeState.MANIFEST_PATCHED,
            UpgradeState.CLEANING,
            UpgradeState.INSTALLING_TARGET,
            UpgradeState.INSTALLING_ALL,
            UpgradeState.VERIFYING,
            UpgradeState.STEP_SUCCESS,
            UpgradeState.DONE,
        ]

    def test_command_sequence(self, settings, run_log):
        runner = scripted()
        UpgradeOrchestrator(settings, run_log, runner=runner).perform_upgrade()
        assert runner.lines() == [
            "npm install react-scripts@5.0.0 --legacy-peer-deps",
            "npm install --legacy-peer-deps",
            "npm run build",
            "npm install --legacy-peer-deps",
            "npm run build",
        ]
        assert not is_legacy(runner.calls[2])
        assert is_legacy(runner.calls[4])
        assert runner.calls[3].timeout == settings.final_install_timeout

    def test_manifest_and_workflow_patched(self, settings, run_log):
        UpgradeOrchestrator(settings, run_log, runner=scripted()).perform_upgrade()
        data = json.loads(settings.manifest_path.read_text(encoding="utf-8"))
        assert data["homepage"] == settings.homepage_url
        assert data["browserslist"] == {
            "production": settings.browserslist_production,
            "development": settings.browserslist_development,
        }
        workflow = settings.workflow_file.read_text(encoding="utf-8")
        assert "node-version: '18'" in workflow
        assert "openssl-legacy-provider" not in workflow

    def test_backup_kept_after_success(self, settings, run_log):
        UpgradeOrchestrator(settings, run_log, runner=scripted()).perform_upgrade()
        assert settings.manifest_backup_path.exists()

    def test_failed_step_restores_and_moves_on(self, settings, run_log, original_manifest):
        runner = scripted(fail_targets={"5.0.0"})
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert orchestrator.perform_upgrade()
        first, second = orchestrator.state.attempts
        assert first.failed_at is UpgradeState.INSTALLING_TARGET
        assert first.restored
        assert second.passed
        assert orchestrator.state.final_version == "5.0.1"
        assert orchestrator.state.restore_count == 1
        assert "Upgrade to 5.0.0 failed, trying fallback..." in _messages(run_log)

    def test_full_install_failure_is_step_failure(self, settings, run_log):
        runner = scripted(fail_full_installs={"5.0.0"})
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert orchestrator.perform_upgrade()
        assert orchestrator.state.attempts[0].failed_at is UpgradeState.INSTALLING_ALL
        assert orchestrator.state.final_version == "5.0.1"

    def test_modern_falls_back_to_legacy(self, settings, run_log):
        runner = scripted(builds={("5.0.0", "modern"): 1})
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert orchestrator.perform_upgrade()
        attempt = orchestrator.state.attempts[0]
        assert attempt.passed
        assert attempt.strategy is BuildStrategy.LEGACY
        step_builds = [c for c in runner.calls if is_build(c)][:2]
        assert [is_legacy(c) for c in step_builds] == [False, True]

    def test_all_steps_fail_restores_snapshot(self, settings, run_log, original_manifest):
        runner = scripted(builds={
            ("5.0.0", "modern"): 1, ("5.0.0", "legacy"): 1,
            ("5.0.1", "modern"): 1, ("5.0.1", "legacy"): 1,
        })
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert not orchestrator.perform_upgrade()
        assert orchestrator.state.current is UpgradeState.FAILED
        assert orchestrator.state.attempted_versions == ["5.0.0", "5.0.1"]
        assert orchestrator.state.restore_count == 2
        assert settings.manifest_path.read_bytes() == original_manifest
        assert "All upgrade attempts failed" in _messages(run_log)

    def test_final_verification_failure_stops_run(self, settings, run_log):
        # Step verification passes with MODERN; the final LEGACY build fails.
        runner = scripted(builds={("5.0.0", "legacy"): 1})
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert not orchestrator.perform_upgrade()
        assert orchestrator.state.current is UpgradeState.FAILED
        assert orchestrator.state.final_version is None
        assert orchestrator.state.attempted_versions == ["5.0.0"]
        assert not any(installed_version(c) == "5.0.1" for c in runner.calls)
        assert "Final build test failed" in _messages(run_log)

    def test_backup_failure_aborts_before_mutation(self, settings, run_log):
        settings.manifest_path.unlink()
        runner = scripted()
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert not orchestrator.perform_upgrade()
        assert orchestrator.state.visited() == [UpgradeState.FAILED]
        assert not orchestrator.state.backed_up
        assert runner.calls == []
        assert not settings.manifest_path.exists()
        assert "Failed to create backup - aborting" in _messages(run_log)

    def test_logs_manifest_constraint_after_install(self, settings, run_log):
        UpgradeOrchestrator(settings, run_log, runner=scripted()).perform_upgrade()
        assert "package.json now requires react-scripts 4.0.3" in _messages(run_log)

    def test_unlisted_target_is_warning(self, settings, run_log):
        data = json.loads(settings.manifest_path.read_text(encoding="utf-8"))
        del data["dependencies"]["react-scripts"]
        settings.manifest_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=scripted())

        assert orchestrator.perform_upgrade()
        warnings = [e.message for e in run_log.entries if e.level is LogLevel.WARN]
        assert "react-scripts is not listed in package.json" in warnings

    def test_undecodable_workflow_does_not_fail_run(self, settings, run_log):
        settings.workflow_file.write_bytes(b"node-version: '16'\n# caf\xe9\n")
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=scripted())

        assert orchestrator.perform_upgrade()
        assert orchestrator.state.current is UpgradeState.DONE
        warnings = [e.message for e in run_log.entries if e.level is LogLevel.WARN]
        assert any(m.startswith("Could not update workflow") for m in warnings)

    def test_manifest_edit_errors_are_warnings(self, settings, run_log, monkeypatch):
        def broken(path, **edits):
            raise ValueError("disk on fire")

        monkeypatch.setattr(
            "toolchain_upgrader.pipeline.orchestrator.update_manifest", broken
        )
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=scripted())

        assert orchestrator.perform_upgrade()
        warnings = [e.message for e in run_log.entries if e.level is LogLevel.WARN]
        assert "Could not update homepage: disk on fire" in warnings
        assert "Could not update browserslist: disk on fire" in warnings

    def test_custom_path_order(self, project_dir, run_log):
        from toolchain_upgrader.config.settings import Settings

        settings = Settings(
            _env_file=None,
            project_dir=project_dir,
            upgrade_path=[
                UpgradeStep(target_version="5.0.1"),
                UpgradeStep(target_version="5.0.0"),
            ],
        )
        runner = scripted(fail_targets={"5.0.1"})
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert orchestrator.perform_upgrade()
        assert orchestrator.state.attempted_versions == ["5.0.1", "5.0.0"]
        assert orchestrator.state.final_version == "5.0.0"

    def test_step_entries_carry_context(self, settings, run_log):
        UpgradeOrchestrator(settings, run_log, runner=scripted()).perform_upgrade()
        log_text = settings.log_path.read_text(encoding="utf-8")
        assert "--- Attempting upgrade to React Scripts 5.0.0" in log_text
        assert "SUCCESS: Successfully upgraded to react-scripts 5.0.0" in log_text


class TestBaseline:
    def test_success(self, settings, run_log):
        runner = scripted()
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert orchestrator.run_baseline()
        assert settings.manifest_backup_path.exists()
        assert settings.lock_backup_path.exists()
        assert runner.lines() == ["npm run build"]
        assert is_legacy(runner.calls[0])
        assert "=== Upgrade test framework ready ===" in _messages(run_log)

    def test_build_failure(self, settings, run_log):
        runner = scripted(builds={(None, "legacy"): 1})
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert not orchestrator.run_baseline()
        assert "Baseline build failed! Cannot proceed with upgrade." in _messages(run_log)

    def test_check_start(self, settings, run_log):
        runner = scripted()
        orchestrator = UpgradeOrchestrator(settings, run_log, runner=runner)

        assert orchestrator.run_baseline(check_start=True)
        assert runner.lines() == ["npm run build", "npm run"]

    def test_backup_failure(self, settings, run_log):
        settings.manifest_path.unlink()
        runner = scripted()
        assert not UpgradeOrchestrator(settings, run_log, runner=runner).run_baseline()
        assert runner.calls == []
