# tests/unit/logging/test_unit_context.py — v1
"""Tests for logging/context.py — per-run logging context."""

from __future__ import annotations

from datetime import datetime, timezone

from toolchain_upgrader.logging.context import LogContext, generate_run_id


class TestLogContext:
    def test_initial_state(self):
        ctx = LogContext()
        assert ctx.run_id is None
        assert ctx.step is None

    def test_as_dict_filters_none(self):
        ctx = LogContext(run_id="run1")
        assert ctx.as_dict() == {"run_id": "run1"}

    def test_as_dict_with_step(self):
        ctx = LogContext(run_id="run1", step="5.0.1")
        assert ctx.as_dict() == {"run_id": "run1", "step": "5.0.1"}


class TestGenerateRunId:
    def test_format(self):
        run_id = generate_run_id()
        assert isinstance(run_id, str)
        assert len(run_id) > 10

    def test_timestamp_prefix(self):
        ts = datetime(2026, 2, 7, 14, 0, 0, tzinfo=timezone.utc)
        assert generate_run_id(ts).startswith("20260207_1400_")

    def test_unique(self):
        assert generate_run_id() != generate_run_id()
