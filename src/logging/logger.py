# src/logging/logger.py — v1
"""Run logger: append-only log artifact plus operator console.

UpgradeLogger is constructed once per run and handed to every component.
Each call produces exactly one LogEntry, written as one line to the
artifact and echoed to the console.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Literal, TextIO

from toolchain_upgrader.core.models import LogEntry, LogLevel
from toolchain_upgrader.logging.context import LogContext, generate_run_id
from toolchain_upgrader.logging.handlers import create_append_handler

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_STDLIB_LEVELS: dict[LogLevel, int] = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.SUCCESS: SUCCESS,
}


def _entry_for(record: logging.LogRecord) -> LogEntry:
    entry = getattr(record, "entry", None)
    if isinstance(entry, LogEntry):
        return entry
    level = LogLevel.INFO
    for log_level, levelno in _STDLIB_LEVELS.items():
        if levelno == record.levelno:
            level = log_level
    return LogEntry(level=level, message=record.getMessage())


class EntryFormatter(logging.Formatter):
    """Render records as ``[<timestamp>] <LEVEL>: <message>`` lines."""

    def format(self, record: logging.LogRecord) -> str:
        return _entry_for(record).render()


class JsonFormatter(logging.Formatter):
    """Structured JSON console formatter."""

    def format(self, record: logging.LogRecord) -> str:
        entry = _entry_for(record)
        payload: dict[str, Any] = {
            "timestamp": entry.timestamp,
            "level": entry.level.value,
            "logger": record.name,
            "message": entry.message,
        }
        context = getattr(record, "context", None)
        if context:
            payload["context"] = context

        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class UpgradeLogger:
    """Explicit logging context for one upgrade run.

    Args:
        log_file: Log artifact path (appended to, never truncated).
        console: Echo entries to ``stream``.
        console_format: "text" (same line as the artifact) or "json".
        stream: Console stream, stdout by default.
        run_id: Identifier for this run; generated when omitted.
        title: Name used in the run-start marker.

    Raises:
        OSError: If the log artifact cannot be opened for appending.
    """

    def __init__(
        self,
        log_file: str | Path,
        *,
        console: bool = True,
        console_format: Literal["text", "json"] = "text",
        stream: TextIO | None = None,
        run_id: str | None = None,
        title: str = "Upgrade process",
    ) -> None:
        self.log_file = Path(log_file)
        self.context = LogContext(run_id=run_id or generate_run_id())
        self.entries: list[LogEntry] = []

        # Owned by this instance only; never registered with logging.getLogger.
        self._logger = logging.Logger(f"toolchain_upgrader.run.{self.context.run_id}", logging.INFO)
        self._logger.propagate = False

        file_handler = create_append_handler(self.log_file)
        file_handler.setFormatter(EntryFormatter())
        self._logger.addHandler(file_handler)

        if console:
            console_handler = logging.StreamHandler(stream or sys.stdout)
            formatter: logging.Formatter
            if console_format == "json":
                formatter = JsonFormatter()
            else:
                formatter = EntryFormatter()
            console_handler.setFormatter(formatter)
            self._logger.addHandler(console_handler)

        self.log(f"=== {title} started ===")

    def log(self, message: str, level: LogLevel | str = LogLevel.INFO) -> LogEntry:
        """Append one entry to the artifact and echo it to the console.

        Raises:
            OSError: If the append fails.
        """
        entry = LogEntry(level=LogLevel(level), message=message)
        self._logger.log(
            _STDLIB_LEVELS[entry.level],
            message,
            extra={"entry": entry, "context": self.context.as_dict()},
        )
        self.entries.append(entry)
        return entry

    def error(self, message: str) -> LogEntry:
        return self.log(message, LogLevel.ERROR)

    def warn(self, message: str) -> LogEntry:
        return self.log(message, LogLevel.WARN)

    def success(self, message: str) -> LogEntry:
        return self.log(message, LogLevel.SUCCESS)

    @contextmanager
    def step_context(self, step: str) -> Iterator[None]:
        """Tag entries emitted inside the block with the active step."""
        previous = self.context.step
        self.context.step = step
        try:
            yield
        finally:
            self.context.step = previous

    def close(self) -> None:
        """Flush and detach all handlers."""
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

    def __enter__(self) -> UpgradeLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
