# src/logging/handlers.py — v1
"""Append-only file handler for the run's log artifact.

Write failures are re-raised to the caller; ``logging.Handler.handleError``
would print them to stderr and drop the record.
"""

from __future__ import annotations

import logging
from pathlib import Path


class StrictFileHandler(logging.FileHandler):
    """FileHandler that propagates emit() failures."""

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        # Called from inside the except block in emit().
        raise


def create_append_handler(log_file: str | Path) -> StrictFileHandler:
    """Create an append-mode handler, creating parent directories.

    Args:
        log_file: Path to the log artifact. Never truncated or rotated.

    Returns:
        Configured StrictFileHandler.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return StrictFileHandler(filename=str(path), mode="a", encoding="utf-8")
