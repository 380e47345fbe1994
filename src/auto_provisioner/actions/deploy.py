"""Release deployment action backed by ``git clone``."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Dict, Optional

from ..release import DEFAULT_LINK_NAME, ReleaseManager
from .base import ActionContext, ProvisioningAction
from .keys import DEPLOY_KEY, DeployKey
from .registry import ActionKind, register

logger = logging.getLogger(__name__)

RELEASE = "release"


class GitFetcher:
    """Fetch action cloning a repository into a release directory."""

    def __init__(
        self,
        context: ActionContext,
        private_key_path: Optional[Path] = None,
        git_binary: str = "git",
    ) -> None:
        self.context = context
        self.private_key_path = private_key_path
        self.git_binary = git_binary

    def environment(self) -> Dict[str, str]:
        if not self.private_key_path:
            return {}
        return {
            "GIT_SSH_COMMAND": (
                f"ssh -i {shlex.quote(str(self.private_key_path))} "
                "-o StrictHostKeyChecking=no"
            ),
        }

    def __call__(self, repository_locator: str, target_path: Path) -> None:
        command = shlex.join([self.git_binary, "clone", repository_locator, str(target_path)])
        self.context.run(
            command,
            cwd=target_path.parent,
            env=self.environment(),
            stream_output=True,
        )


@register(ActionKind.DEPLOY_RELEASE)
class DeployRelease(ProvisioningAction):
    """Clone the repository as a new release and make it current."""

    description = "Deploy release"

    def __init__(
        self,
        repo_url: str,
        base_path: Path,
        private_key_path: Optional[Path] = None,
        link_name: str = DEFAULT_LINK_NAME,
        manager: Optional[ReleaseManager] = None,
    ) -> None:
        self.repo_url = repo_url
        self.base_path = Path(base_path)
        self.private_key_path = private_key_path
        self.manager = manager or ReleaseManager(link_name=link_name)

    def execute(self, context: ActionContext) -> None:
        key_path = self.private_key_path
        if key_path is None:
            deploy_key: Optional[DeployKey] = context.shared.get(DEPLOY_KEY)
            key_path = deploy_key.private_key_path if deploy_key else None

        fetcher = GitFetcher(context, private_key_path=key_path)
        release = self.manager.deploy(self.repo_url, self.base_path, fetcher)
        context.shared[RELEASE] = release
        context.interaction.notify(f"Repository cloned to {release.target_path}", level="success")
