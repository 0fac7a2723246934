# src/core/models.py — v1
"""Shared Pydantic models used across the upgrader.

Other modules import these types from here; none of them redefine one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# === ERRORS ===


class UpgradeError(Exception):
    """Base class for the upgrader's own exceptions."""


# === LOG ENTRIES ===


class LogLevel(str, Enum):
    """Severity of an audit-trail entry."""

    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    ts = moment or datetime.now(timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


class LogEntry(BaseModel):
    """One line of the run's log artifact."""

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=utc_timestamp)
    level: LogLevel = LogLevel.INFO
    message: str

    def render(self) -> str:
        """Format as ``[<timestamp>] <LEVEL>: <message>``."""
        return f"[{self.timestamp}] {self.level.value}: {self.message}"


# === UPGRADE PATH ===


class UpgradeStep(BaseModel):
    """One candidate target version of the build-tool dependency."""

    model_config = ConfigDict(frozen=True)

    target_version: str = Field(min_length=1)
    description: str = ""

    @classmethod
    def parse(cls, raw: str) -> UpgradeStep:
        """Parse ``VERSION`` or ``VERSION=DESCRIPTION`` (CLI form)."""
        version, _, description = raw.partition("=")
        version = version.strip()
        return cls(
            target_version=version,
            description=description.strip() or f"version {version}",
        )

    @property
    def label(self) -> str:
        return self.description or self.target_version


# === EXTERNAL PROCESSES ===


class CommandResult(BaseModel):
    """Outcome of one external process invocation."""

    command: list[str]
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out and self.error is None

    def describe(self) -> str:
        """Short human-readable reason for a failed invocation."""
        cmd = " ".join(self.command)
        if self.timed_out:
            return f"`{cmd}` timed out after {self.duration_seconds:.0f}s"
        if self.error is not None:
            return f"`{cmd}` could not be started: {self.error}"
        return f"`{cmd}` exited with code {self.returncode}"


class OperationResult(BaseModel):
    """Result of a recoverable operation.

    Truthy iff the operation succeeded.
    """

    success: bool
    message: str = ""
    stdout: str = ""
    stderr: str = ""

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def succeeded(cls, message: str = "") -> OperationResult:
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, message: str, stdout: str = "", stderr: str = "") -> OperationResult:
        return cls(success=False, message=message, stdout=stdout, stderr=stderr)

    @classmethod
    def from_command(cls, result: CommandResult, message: str = "") -> OperationResult:
        """Wrap a CommandResult, keeping its captured output."""
        return cls(
            success=result.ok,
            message=message or ("" if result.ok else result.describe()),
            stdout=result.stdout,
            stderr=result.stderr,
        )


# === BUILDS ===


class BuildStrategy(str, Enum):
    """How the build command is invoked.

    MODERN inherits the environment as-is; LEGACY additionally sets the
    runtime compatibility flag.
    """

    MODERN = "modern"
    LEGACY = "legacy"


class BuildResult(BaseModel):
    """Ephemeral outcome of one build verification attempt."""

    passed: bool
    strategy: BuildStrategy
    stdout: str = ""
    stderr: str = ""
    artifact_file_count: int | None = None
    artifact_files: list[str] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return self.passed
