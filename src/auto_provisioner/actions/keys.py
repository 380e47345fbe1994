"""Deploy key generation and confirmation."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import paramiko

from .base import ActionContext, ProvisioningAction
from .registry import ActionKind, register

logger = logging.getLogger(__name__)

DEPLOY_KEY = "deploy_key"
DEPLOY_KEY_CONFIRMED = "deploy_key_confirmed"


@dataclass
class DeployKey:
    private_key_path: Path
    public_key_path: Path

    def public_key(self) -> str:
        return self.public_key_path.read_text(encoding="utf-8").strip()


@register(ActionKind.GENERATE_DEPLOY_KEY)
class GenerateDeployKey(ProvisioningAction):
    """Create a fresh RSA key pair the repository host can trust as a deploy key."""

    description = "Generate SSH deploy key"

    def __init__(
        self,
        key_dir: Optional[Path] = None,
        key_name: Optional[str] = None,
        bits: int = 4096,
        comment: str = "auto-provisioner",
    ) -> None:
        self.key_dir = Path(key_dir) if key_dir else Path.home() / ".ssh"
        self.key_name = key_name
        self.bits = bits
        self.comment = comment

    def execute(self, context: ActionContext) -> None:
        name = self.key_name or f"id_{int(time.time() * 1000)}"
        private_path = self.key_dir / name
        public_path = self.key_dir / f"{name}.pub"
        if private_path.exists():
            raise FileExistsError(f"Refusing to overwrite existing key {private_path}")

        self.key_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        key = paramiko.RSAKey.generate(self.bits)
        key.write_private_key_file(str(private_path))
        os.chmod(private_path, 0o600)
        public_path.write_text(
            f"{key.get_name()} {key.get_base64()} {self.comment}\n",
            encoding="utf-8",
        )

        context.shared[DEPLOY_KEY] = DeployKey(private_path, public_path)
        logger.info("Deploy key written to %s", private_path)


@register(ActionKind.CONFIRM_DEPLOY_KEY)
class ConfirmDeployKey(ProvisioningAction):
    """Show the deploy key and wait until the operator registered it."""

    description = "Confirm deploy key registration"

    def execute(self, context: ActionContext) -> None:
        deploy_key: Optional[DeployKey] = context.shared.get(DEPLOY_KEY)
        if deploy_key is None:
            raise RuntimeError("No deploy key was generated in this run")

        interaction = context.interaction
        interaction.notify(
            "Add this public key to your repository deploy keys:\n" + deploy_key.public_key()
        )
        interaction.notify(
            f"Add this private key to your CI/CD secrets:\n{deploy_key.private_key_path}"
        )
        confirmed = interaction.ask_confirm("Are you done adding the key?", default=False)
        context.shared[DEPLOY_KEY_CONFIRMED] = confirmed
        if not confirmed:
            interaction.notify(
                "Deploy key not confirmed; release and database steps will be skipped",
                level="warning",
            )
