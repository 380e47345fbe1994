"""Local command execution session."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class LocalCommandResult:
    """Result of executing a local command."""

    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class LocalSession:
    """
    Runs shell commands on the local machine through ``bash``.

    The working directory and environment are passed per call and never
    applied to the current process, so actions cannot leak ``cd`` or
    ``export`` side effects into each other. Commands block until they exit;
    there is no timeout.
    """

    def __init__(self, shell: str = "/bin/bash") -> None:
        self.shell = shell

    def run(
        self,
        command: str,
        *,
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        stream_output: bool = False,
    ) -> LocalCommandResult:
        """
        Execute ``command`` and wait for it to finish.

        Args:
            command: Shell command line.
            cwd: Working directory for this command only.
            env: Extra environment variables layered over ``os.environ``.
            stream_output: Let the command write straight to the terminal
                instead of capturing its output.
        """
        logger.debug("$ %s (cwd=%s)", command, cwd or os.getcwd())
        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        try:
            process = subprocess.run(
                command,
                shell=True,
                executable=self.shell,
                cwd=str(cwd) if cwd else None,
                env=full_env,
                stdin=subprocess.DEVNULL,
                capture_output=not stream_output,
                text=True,
                check=False,
            )
        except OSError as exc:
            return LocalCommandResult(
                command=command,
                stdout="",
                stderr=str(exc),
                exit_status=-1,
            )

        return LocalCommandResult(
            command=command,
            stdout=(process.stdout or "").strip(),
            stderr=(process.stderr or "").strip(),
            exit_status=process.returncode,
        )
