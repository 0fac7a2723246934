# src/core/process.py — v1
"""Structured external-process invocation.

Commands are always an argument list (never a shell string). A timeout,
a missing executable or any other OS-level failure to run the command is
reported in the returned CommandResult, never raised. Output is decoded as
UTF-8 with undecodable bytes replaced.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from toolchain_upgrader.core.models import CommandResult

logger = logging.getLogger(__name__)


def _to_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class ProcessRunner:
    """Run external commands with captured output and a bounded timeout.

    Args:
        cwd: Default working directory for every command.
    """

    def __init__(self, cwd: Path | None = None) -> None:
        self._cwd = cwd

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``command`` with ``args`` and wait for it to finish.

        Args:
            command: Executable name or path.
            args: Argument list.
            cwd: Working directory (defaults to the runner's cwd).
            env: Overrides merged on top of the inherited environment.
            timeout: Seconds before the process is killed.

        Returns:
            CommandResult with captured stdout/stderr.
        """
        argv = [command, *args]
        run_env = None
        if env:
            run_env = {**os.environ, **env}
        workdir = cwd or self._cwd

        logger.debug("Running %s (cwd=%s, timeout=%s)", argv, workdir, timeout)
        start = time.monotonic()
        try:
            completed = subprocess.run(
                argv,
                cwd=str(workdir) if workdir else None,
                env=run_env,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            return CommandResult(
                command=argv,
                stdout=_to_text(exc.stdout),
                stderr=_to_text(exc.stderr),
                timed_out=True,
                duration_seconds=time.monotonic() - start,
            )
        except OSError as exc:
            return CommandResult(
                command=argv,
                error=str(exc),
                duration_seconds=time.monotonic() - start,
            )

        duration = time.monotonic() - start
        logger.debug("%s exited %d in %.1fs", argv[0], completed.returncode, duration)
        return CommandResult(
            command=argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            duration_seconds=duration,
        )
