# src/pipeline/state.py — v1
"""Upgrade state machine record.

RunState tracks the current UpgradeState, every transition taken, and one
StepAttempt per upgrade step tried. Transitions are checked against
ALLOWED_TRANSITIONS; an illegal one is a programming error.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from toolchain_upgrader.core.models import BuildStrategy, UpgradeError


class UpgradeState(str, Enum):
    INIT = "init"
    BACKED_UP = "backed_up"
    MANIFEST_PATCHED = "manifest_patched"
    CLEANING = "cleaning"
    INSTALLING_TARGET = "installing_target"
    INSTALLING_ALL = "installing_all"
    VERIFYING = "verifying"
    STEP_SUCCESS = "step_success"
    STEP_FAILED = "step_failed"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({UpgradeState.DONE, UpgradeState.FAILED})

ALLOWED_TRANSITIONS: dict[UpgradeState, frozenset[UpgradeState]] = {
    UpgradeState.INIT: frozenset({UpgradeState.BACKED_UP}),
    UpgradeState.BACKED_UP: frozenset({UpgradeState.MANIFEST_PATCHED}),
    UpgradeState.MANIFEST_PATCHED: frozenset({UpgradeState.CLEANING}),
    UpgradeState.CLEANING: frozenset({UpgradeState.INSTALLING_TARGET}),
    UpgradeState.INSTALLING_TARGET: frozenset(
        {UpgradeState.INSTALLING_ALL, UpgradeState.STEP_FAILED}
    ),
    UpgradeState.INSTALLING_ALL: frozenset(
        {UpgradeState.VERIFYING, UpgradeState.STEP_FAILED}
    ),
    UpgradeState.VERIFYING: frozenset(
        {UpgradeState.STEP_SUCCESS, UpgradeState.STEP_FAILED}
    ),
    UpgradeState.STEP_FAILED: frozenset({UpgradeState.CLEANING}),
    UpgradeState.STEP_SUCCESS: frozenset({UpgradeState.DONE}),
    UpgradeState.DONE: frozenset(),
    UpgradeState.FAILED: frozenset(),
}


class InvalidTransitionError(UpgradeError):
    """Raised on a transition not listed in ALLOWED_TRANSITIONS."""


class StateTransition(BaseModel):
    state: UpgradeState
    step_version: str | None = None
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StepAttempt(BaseModel):
    """Outcome of one upgrade step."""

    version: str
    description: str = ""
    passed: bool = False
    failed_at: UpgradeState | None = None
    strategy: BuildStrategy | None = None
    restored: bool = False


class RunState(BaseModel):
    """Mutable state of one orchestrator run."""

    current: UpgradeState = UpgradeState.INIT
    history: list[StateTransition] = Field(default_factory=list)
    attempts: list[StepAttempt] = Field(default_factory=list)
    final_version: str | None = None
    restore_count: int = 0

    def transition(self, state: UpgradeState, step_version: str | None = None) -> None:
        """Move to ``state``.

        FAILED is reachable from any non-terminal state.

        Raises:
            InvalidTransitionError: If the move is not allowed.
        """
        allowed = ALLOWED_TRANSITIONS[self.current]
        if self.is_terminal or (state not in allowed and state is not UpgradeState.FAILED):
            raise InvalidTransitionError(f"{self.current.value} -> {state.value}")
        self.current = state
        self.history.append(StateTransition(state=state, step_version=step_version))

    @property
    def is_terminal(self) -> bool:
        return self.current in TERMINAL_STATES

    @property
    def succeeded(self) -> bool:
        return self.current is UpgradeState.DONE

    @property
    def backed_up(self) -> bool:
        """True once a snapshot was taken during this run."""
        return any(t.state is UpgradeState.BACKED_UP for t in self.history)

    @property
    def attempted_versions(self) -> list[str]:
        return [attempt.version for attempt in self.attempts]

    def visited(self) -> list[UpgradeState]:
        return [t.state for t in self.history]
