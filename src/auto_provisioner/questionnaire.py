"""Questions asked before and during provisioning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from .actions.runtime import PACKAGE_MANAGERS
from .credentials import MIN_PASSWORD_LENGTH, Credential, database_name_for
from .interaction import UserInteractionHandler

if TYPE_CHECKING:
    from .config import ProvisionConfig

logger = logging.getLogger(__name__)

APP_TYPES = ["php", "nodejs"]


@dataclass
class SetupAnswers:
    """Everything the setup workflow needs to build its step list."""

    repo_url: str
    clone_dir: Path
    app_type: str = "php"
    domain: str = ""
    php_version: str = "8.2"
    node_version: Optional[str] = None
    package_manager: str = "npm"
    node_port: int = 3000
    should_build: bool = True
    use_dev: bool = False

    @property
    def is_php(self) -> bool:
        return self.app_type == "php"


def _required(value: str) -> Optional[str]:
    return None if value.strip() else "A value is required"


def _port(value: str) -> Optional[str]:
    if value.isdigit() and 0 < int(value) < 65536:
        return None
    return "Enter a port number between 1 and 65535"


def collect_setup_answers(
    handler: UserInteractionHandler,
    defaults: "ProvisionConfig",
    node_versions: List[str],
) -> SetupAnswers:
    domain = handler.ask_text("Enter domain name (optional):", default=defaults.domain or "")
    app_type = handler.ask_choice("Select application type:", APP_TYPES, default=defaults.app_type)

    answers = SetupAnswers(
        repo_url="",
        clone_dir=Path(defaults.deploy_dir),
        app_type=app_type,
        domain=domain.strip(),
    )
    if answers.is_php:
        answers.php_version = handler.ask_text(
            "Enter PHP version to install:", default=defaults.php_version
        )
    else:
        answers.node_version = handler.ask_choice(
            "Select Node.js version:", node_versions, default=node_versions[0]
        )
        answers.package_manager = handler.ask_choice(
            "Select package manager:", list(PACKAGE_MANAGERS), default="npm"
        )
        answers.node_port = int(handler.ask_text(
            "Enter Node.js application port:",
            default=str(defaults.node_port),
            validator=_port,
        ))

    answers.repo_url = handler.ask_text(
        "Enter Git repository URL:", default=defaults.repo_url, validator=_required
    ).strip()
    answers.clone_dir = Path(handler.ask_text(
        "Enter directory to clone repository:", default=str(defaults.deploy_dir)
    ))

    if not answers.is_php:
        answers.should_build = handler.ask_confirm("Run build process?", default=True)
        answers.use_dev = handler.ask_confirm("Run in development mode?", default=False)
    return answers


def locate_env_file(handler: UserInteractionHandler, repo_path: Union[str, Path]) -> Optional[Path]:
    """Ask where an existing ``.env`` lives; ``None`` means start from scratch."""
    repo_path = Path(repo_path)

    def _resolve(value: str) -> Path:
        candidate = Path(value).expanduser()
        return candidate if candidate.is_absolute() else repo_path / candidate

    def _exists(value: str) -> Optional[str]:
        if not value:
            return None
        return None if _resolve(value).exists() else "File does not exist"

    handler.notify(".env files are typically not version controlled", level="warning")
    default = repo_path / ".env"
    answer = handler.ask_text(
        "Path to your .env file (or leave blank to create new):",
        default=str(default) if default.exists() else "",
        validator=_exists,
    ).strip()
    return _resolve(answer) if answer else None


def ask_database_credentials(handler: UserInteractionHandler, repo_path: Union[str, Path]) -> Credential:
    """Prompt for a database user; a blank password gets a generated one."""

    def _password(value: str) -> Optional[str]:
        if not value or len(value) >= MIN_PASSWORD_LENGTH:
            return None
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    user = handler.ask_text("MySQL username:", default="app_user", validator=_required)
    password = handler.ask_secret(
        f"MySQL password (min {MIN_PASSWORD_LENGTH} chars, blank to generate):",
        validator=_password,
    )
    database = handler.ask_text(
        "Database name:", default=database_name_for(repo_path), validator=_required
    )

    if not password:
        logger.info("Generating a random password for %s", user)
        return Credential.generate(database=database, user=user)
    return Credential(user=user, password=password, database=database)
