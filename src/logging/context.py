# src/logging/context.py — v1
"""Per-run logging context: run_id and the upgrade step in progress.

Held by the UpgradeLogger instance and passed explicitly; there is no
module-level state.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd_hhmm_{uuid4_short}."""
    ts = timestamp or datetime.now(timezone.utc)
    short_uuid = uuid.uuid4().hex[:5]
    return f"{ts.strftime('%Y%m%d_%H%M')}_{short_uuid}"


@dataclass
class LogContext:
    """Mutable context attached to every record emitted by one run."""

    run_id: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}
