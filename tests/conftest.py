# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a temporary JS project (manifest, lock file, CI workflow), settings
pointing at it, a run logger, and a scripted fake process runner.
No real package manager is ever invoked.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from support import FakeRunner, write_project

from toolchain_upgrader.config.settings import Settings
from toolchain_upgrader.logging.logger import UpgradeLogger


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Temporary project with manifest, lock file and deploy workflow."""
    return write_project(tmp_path / "project")


@pytest.fixture
def settings(project_dir: Path) -> Settings:
    return Settings(_env_file=None, project_dir=project_dir)


@pytest.fixture
def run_log(settings: Settings):
    log = UpgradeLogger(settings.log_path, console=False, run_id="test_run")
    yield log
    log.close()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
