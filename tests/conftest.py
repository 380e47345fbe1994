"""Shared fakes for tests; nothing here touches the real system."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from auto_provisioner.actions import ActionContext
from auto_provisioner.interaction import AutoResponseHandler
from auto_provisioner.local import LocalCommandResult


@dataclass
class RecordedCall:
    command: str
    cwd: Optional[Path]
    env: Dict[str, str]


@dataclass
class RecordingSession:
    """Stands in for ``LocalSession``: records commands instead of running them.

    ``failures`` maps a command substring to the exit status to report.
    ``hooks`` are called with each command, e.g. to create a cloned directory.
    """

    failures: Dict[str, int] = field(default_factory=dict)
    hooks: List[Callable[[str], None]] = field(default_factory=list)
    calls: List[RecordedCall] = field(default_factory=list)

    def run(self, command, *, cwd=None, env=None, stream_output=False) -> LocalCommandResult:
        self.calls.append(RecordedCall(command, Path(cwd) if cwd else None, dict(env or {})))
        for hook in self.hooks:
            hook(command)
        for pattern, status in self.failures.items():
            if pattern in command:
                return LocalCommandResult(command=command, stdout="", stderr="boom", exit_status=status)
        return LocalCommandResult(command=command, stdout="", stderr="", exit_status=0)

    @property
    def commands(self) -> List[str]:
        return [call.command for call in self.calls]


@pytest.fixture
def session() -> RecordingSession:
    return RecordingSession()


@pytest.fixture
def handler() -> AutoResponseHandler:
    return AutoResponseHandler(always_confirm=True)


@pytest.fixture
def context(session, handler, tmp_path) -> ActionContext:
    return ActionContext(session=session, interaction=handler, working_dir=tmp_path)
