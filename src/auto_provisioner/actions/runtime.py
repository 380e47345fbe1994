"""Runtime installation actions: base packages, PHP, Node.js, pm2 apps."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Sequence

from .base import ActionContext, ProvisioningAction
from .registry import ActionKind, register

logger = logging.getLogger(__name__)

NVM_INSTALL_URL = "https://raw.githubusercontent.com/nvm-sh/nvm/v0.39.7/install.sh"

DEFAULT_PHP_EXTENSIONS = (
    "cli", "common", "curl", "gd",
    "mbstring", "mysql", "pdo", "xml",
    "zip", "bcmath", "opcache", "intl",
)

PACKAGE_MANAGERS = ("npm", "yarn", "pnpm")


def nvm_command(*commands: str) -> str:
    """Wrap ``commands`` in a bash login that has nvm loaded."""
    script = " && ".join(["source ~/.nvm/nvm.sh", *commands])
    return f"bash -c {shlex.quote(script)}"


@register(ActionKind.INSTALL_BASE_PACKAGES)
class InstallBasePackages(ProvisioningAction):

    description = "Install base dependencies"

    def __init__(self, packages: Sequence[str] = ("curl", "git", "nginx")) -> None:
        self.packages = tuple(packages)

    def execute(self, context: ActionContext) -> None:
        context.run_all(
            "sudo apt-get update -qq",
            f"sudo apt-get install -y -qq {' '.join(self.packages)}",
        )


@register(ActionKind.INSTALL_PHP)
class InstallPHP(ProvisioningAction):

    def __init__(self, version: str) -> None:
        self.version = version
        self.description = f"Install PHP {version}"

    def execute(self, context: ActionContext) -> None:
        context.run_all(
            "sudo add-apt-repository -y ppa:ondrej/php",
            "sudo apt-get update -qq",
            f"sudo apt-get install -y -qq php{self.version} php{self.version}-fpm",
        )


@register(ActionKind.INSTALL_PHP_EXTENSIONS)
class InstallPHPExtensions(ProvisioningAction):

    description = "Install PHP extensions"

    def __init__(self, version: str, extensions: Sequence[str] = DEFAULT_PHP_EXTENSIONS) -> None:
        self.version = version
        self.extensions = tuple(extensions)

    def execute(self, context: ActionContext) -> None:
        packages = " ".join(f"php{self.version}-{ext}" for ext in self.extensions)
        context.run(f"sudo apt-get install -y -qq {packages}")


@register(ActionKind.INSTALL_NODE)
class InstallNode(ProvisioningAction):
    """Install nvm, the requested Node.js version and pm2."""

    def __init__(self, version: str) -> None:
        self.version = version
        self.description = f"Install Node.js {version} with NVM"

    def execute(self, context: ActionContext) -> None:
        context.run(f"curl -o- {NVM_INSTALL_URL} | bash")
        context.run(nvm_command(
            f"nvm install {self.version}",
            f"nvm alias default {self.version}",
            "npm install -g pm2",
        ))


@register(ActionKind.INSTALL_PACKAGE_MANAGER)
class InstallPackageManager(ProvisioningAction):

    def __init__(self, manager: str) -> None:
        if manager not in PACKAGE_MANAGERS:
            raise ValueError(f"Unsupported package manager: {manager}")
        self.manager = manager
        self.description = f"Install {manager}"

    def execute(self, context: ActionContext) -> None:
        if self.manager == "npm":
            logger.debug("npm ships with Node.js, nothing to install")
            return
        context.run(nvm_command(f"npm install -g {self.manager}"))


@register(ActionKind.START_NODE_APP)
class StartNodeApp(ProvisioningAction):
    """Install dependencies, optionally build, and run the app under pm2.

    ``app_dir`` is the stable current-release link, so pm2 keeps pointing at
    whichever release is live.
    """

    description = "Set up Node.js application"

    def __init__(
        self,
        app_dir: Path,
        app_name: str,
        package_manager: str = "npm",
        should_build: bool = True,
        use_dev: bool = False,
    ) -> None:
        self.app_dir = Path(app_dir)
        self.app_name = app_name
        self.package_manager = package_manager
        self.should_build = should_build
        self.use_dev = use_dev

    def commands(self) -> list:
        pm = self.package_manager
        script = "dev" if self.use_dev else "start"
        if pm == "yarn":
            install_cmd, build_cmd, start_args = "yarn", "yarn build", script
        else:
            install_cmd, build_cmd, start_args = f"{pm} install", f"{pm} run build", f"run {script}"

        commands = [install_cmd]
        if self.should_build:
            commands.append(build_cmd)
        commands.extend([
            f"pm2 start {pm} --name {shlex.quote(self.app_name)} -- {start_args}",
            "pm2 save",
            "pm2 startup",
        ])
        return commands

    def execute(self, context: ActionContext) -> None:
        for command in self.commands():
            context.run(nvm_command(command), cwd=self.app_dir, stream_output=True)
