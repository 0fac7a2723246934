# src/pipeline/build_verifier.py — v1
"""Build verification: run the project's build script, inspect its output.

Each call runs exactly one invocation strategy; choosing between MODERN
and LEGACY is the orchestrator's job. The command's exit status alone
decides pass/fail; the output directory is only inspected for diagnostics.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from toolchain_upgrader.core.models import BuildResult, BuildStrategy, OperationResult
from toolchain_upgrader.storage.manifest import ManifestDocument, ManifestError

if TYPE_CHECKING:
    from toolchain_upgrader.config.settings import Settings
    from toolchain_upgrader.core.process import ProcessRunner
    from toolchain_upgrader.logging.logger import UpgradeLogger


class BuildVerifier:
    """Run ``<package_manager> run <build_script>`` and check the result.

    Args:
        logger: Run logger.
        runner: External process runner.
        package_manager: Package manager executable.
        build_script: Manifest script that builds the project.
        build_dir: Output artifact directory.
        timeout: Build timeout in seconds.
        base_env: Environment overrides for every strategy.
        legacy_env: Extra overrides for the LEGACY strategy only.
        preview_limit: Number of artifact names logged.
        manifest_path: Manifest used by test_start().
        start_script: Script checked by test_start().
        start_timeout: Timeout for test_start().
    """

    def __init__(
        self,
        logger: UpgradeLogger,
        runner: ProcessRunner,
        *,
        package_manager: str = "npm",
        build_script: str = "build",
        build_dir: Path = Path("build"),
        timeout: float = 300.0,
        base_env: Mapping[str, str] | None = None,
        legacy_env: Mapping[str, str] | None = None,
        preview_limit: int = 10,
        manifest_path: Path = Path("package.json"),
        start_script: str = "start",
        start_timeout: float = 10.0,
    ) -> None:
        self._logger = logger
        self._runner = runner
        self.package_manager = package_manager
        self.build_script = build_script
        self.build_dir = build_dir
        self.timeout = timeout
        self.base_env = dict(base_env or {})
        self.legacy_env = dict(legacy_env or {})
        self.preview_limit = preview_limit
        self.manifest_path = manifest_path
        self.start_script = start_script
        self.start_timeout = start_timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, logger: UpgradeLogger, runner: ProcessRunner
    ) -> BuildVerifier:
        return cls(
            logger,
            runner,
            package_manager=settings.package_manager,
            build_script=settings.build_script,
            build_dir=settings.build_output_path,
            timeout=settings.build_timeout,
            base_env=settings.build_env,
            legacy_env=settings.legacy_env,
            preview_limit=settings.build_preview_limit,
            manifest_path=settings.manifest_path,
            start_script=settings.start_script,
            start_timeout=settings.start_check_timeout,
        )

    def environment_for(self, strategy: BuildStrategy) -> dict[str, str]:
        """Environment overrides used by ``strategy``."""
        env = dict(self.base_env)
        if strategy is BuildStrategy.LEGACY:
            env.update(self.legacy_env)
        return env

    def test_build(self, strategy: BuildStrategy = BuildStrategy.LEGACY) -> BuildResult:
        """Run one build with ``strategy``."""
        self._logger.log(f"Testing build process ({strategy.value} invocation)...")
        result = self._runner.run(
            self.package_manager,
            ["run", self.build_script],
            env=self.environment_for(strategy),
            timeout=self.timeout,
        )

        if not result.ok:
            self._logger.error(f"Build failed: {result.describe()}")
            self._logger.error(f"Build stderr: {result.stderr or 'No stderr'}")
            self._logger.error(f"Build stdout: {result.stdout or 'No stdout'}")
            return BuildResult(
                passed=False,
                strategy=strategy,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        self._logger.success("Build completed successfully")
        self._logger.log(f"Build output length: {len(result.stdout)} characters")
        count, files = self._inspect_artifacts()
        return BuildResult(
            passed=True,
            strategy=strategy,
            stdout=result.stdout,
            stderr=result.stderr,
            artifact_file_count=count,
            artifact_files=files,
        )

    def _inspect_artifacts(self) -> tuple[int | None, list[str]]:
        if not self.build_dir.is_dir():
            self._logger.warn(f"Build directory {self.build_dir} not found")
            return None, []
        try:
            files = sorted(entry.name for entry in self.build_dir.iterdir())
        except OSError as exc:
            self._logger.warn(f"Could not list build directory: {exc}")
            return None, []

        preview = ", ".join(files[: self.preview_limit])
        if len(files) > self.preview_limit:
            preview += "..."
        self._logger.log(f"Build directory contains {len(files)} files")
        self._logger.log(f"Build files: {preview}")
        return len(files), files

    def test_start(self) -> OperationResult:
        """Quick check that the start script is declared and listed by npm.

        Does not launch the dev server.
        """
        self._logger.log("Testing start process (quick check)...")
        try:
            manifest = ManifestDocument.load(self.manifest_path)
        except ManifestError as exc:
            self._logger.error(f"Start script test failed: {exc}")
            return OperationResult.failed(str(exc))

        if not manifest.has_script(self.start_script):
            message = f"No '{self.start_script}' script in {self.manifest_path.name}"
            self._logger.error(f"Start script test failed: {message}")
            return OperationResult.failed(message)

        result = self._runner.run(
            self.package_manager, ["run"], timeout=self.start_timeout
        )
        if not result.ok:
            self._logger.error(f"Start script test failed: {result.describe()}")
            return OperationResult.from_command(result)

        self._logger.success("Start script verification passed")
        return OperationResult.from_command(result, "Start script verified")
