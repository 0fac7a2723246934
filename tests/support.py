# tests/support.py — v1
"""Test doubles shared by unit and integration tests.

Importable as ``support`` (tests/ is on pytest's pythonpath).
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from toolchain_upgrader.core.models import CommandResult

SAMPLE_MANIFEST: dict[str, Any] = {
    "name": "claude-sequencer",
    "version": "0.1.0",
    "private": True,
    "homepage": "https://shepsci.github.io/claude-sequencer",
    "dependencies": {
        "react": "^17.0.2",
        "react-dom": "^17.0.2",
        "react-scripts": "4.0.3",
    },
    "scripts": {
        "start": "react-scripts start",
        "build": "react-scripts build",
        "test": "react-scripts test",
    },
    "browserslist": [">0.2%", "not dead"],
}

SAMPLE_WORKFLOW = """name: Deploy
on:
  push:
    branches: [main]
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/setup-node@v3
        with:
          node-version: '16'
      - run: |
          export NODE_OPTIONS=--openssl-legacy-provider
          npm run build
      - run: echo "deploying claude-sequencer to /claude-sequencer/"
"""


# === FAKE PROCESS RUNNER ===


@dataclass
class RecordedCall:
    command: str
    args: list[str]
    env: dict[str, str]
    timeout: float | None

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]

    @property
    def line(self) -> str:
        return " ".join(self.argv)


Responder = Callable[[RecordedCall], "CommandResult | int"]


@dataclass
class FakeRunner:
    """Stand-in for ProcessRunner.

    ``responder`` receives each call and returns a CommandResult or just an
    exit code; the default answers 0 to everything.
    """

    responder: Responder | None = None
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        call = RecordedCall(command, list(args), dict(env or {}), timeout)
        self.calls.append(call)
        outcome: CommandResult | int = 0
        if self.responder is not None:
            outcome = self.responder(call)
        if isinstance(outcome, CommandResult):
            return outcome
        return CommandResult(
            command=call.argv,
            returncode=outcome,
            stdout="ok" if outcome == 0 else "",
            stderr="" if outcome == 0 else "boom",
        )

    def lines(self) -> list[str]:
        return [call.line for call in self.calls]


def is_build(call: RecordedCall) -> bool:
    return call.args[:2] == ["run", "build"]


def is_legacy(call: RecordedCall) -> bool:
    return "NODE_OPTIONS" in call.env


def installed_version(call: RecordedCall) -> str | None:
    """Version from ``npm install react-scripts@X``, else None."""
    for arg in call.args:
        if arg.startswith("react-scripts@"):
            return arg.split("@", 1)[1]
    return None


def write_project(root: Path) -> Path:
    """Create a JS project with manifest, lock file and deploy workflow."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps(SAMPLE_MANIFEST, indent=2), encoding="utf-8")
    (root / "package-lock.json").write_text('{"lockfileVersion": 2}\n', encoding="utf-8")
    workflow = root / ".github" / "workflows" / "deploy.yml"
    workflow.parent.mkdir(parents=True, exist_ok=True)
    workflow.write_text(SAMPLE_WORKFLOW, encoding="utf-8")
    (root / "node_modules" / "react").mkdir(parents=True, exist_ok=True)
    return root
