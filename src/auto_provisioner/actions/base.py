"""Provisioning action contract."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..errors import ActionFailedError
from ..local import LocalCommandResult, LocalSession

if TYPE_CHECKING:
    from ..interaction import UserInteractionHandler

logger = logging.getLogger(__name__)


@dataclass
class ActionContext:
    """
    Explicit working context threaded through every action invocation.

    Actions read their working directory and environment from here instead
    of changing the process's current directory or ``os.environ``. ``shared``
    carries values produced by one step for later ones (for example the
    deploy key path or the deployed release).
    """

    session: LocalSession
    interaction: "UserInteractionHandler"
    working_dir: Path = field(default_factory=Path.cwd)
    env: Dict[str, str] = field(default_factory=dict)
    shared: Dict[str, Any] = field(default_factory=dict)

    def run(
        self,
        command: str,
        *,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        stream_output: bool = False,
    ) -> LocalCommandResult:
        """Run ``command`` and raise ``ActionFailedError`` on a non-zero exit."""
        merged_env = {**self.env, **(env or {})}
        result = self.session.run(
            command,
            cwd=cwd or self.working_dir,
            env=merged_env,
            stream_output=stream_output,
        )
        if not result.ok:
            raise ActionFailedError(
                f"Command failed with exit code {result.exit_status}: {command}"
                + (f"\n{result.stderr}" if result.stderr else ""),
                command=command,
                exit_code=result.exit_status,
                stderr=result.stderr,
            )
        return result

    def run_all(self, *commands: str, cwd: Optional[Path] = None) -> None:
        for command in commands:
            self.run(command, cwd=cwd)


class ProvisioningAction(ABC):
    """One external effect: install a package, write a file, start a process.

    ``execute`` returns on success and raises on failure. The runner treats
    the exception message as opaque text.
    """

    #: Human-readable label used for step names.
    description: str = ""

    @abstractmethod
    def execute(self, context: ActionContext) -> None:
        """Perform the action."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.description}>"
