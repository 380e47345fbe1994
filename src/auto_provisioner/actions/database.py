"""MySQL installation, database user provisioning and ``.env`` updates."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Dict, Optional

from ..credentials import Credential, CredentialReconciler
from ..utils.logging import mask_secret
from .base import ActionContext, ProvisioningAction
from .registry import ActionKind, register

logger = logging.getLogger(__name__)

CREDENTIAL = "credential"


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def quote_literal(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"


def _credential(context: ActionContext) -> Credential:
    credential: Optional[Credential] = context.shared.get(CREDENTIAL)
    if credential is None:
        raise RuntimeError("Database credentials have not been resolved yet")
    return credential


class _MySQLAction(ProvisioningAction):
    """Runs the mysql client as root; the password travels in MYSQL_PWD."""

    def __init__(self, root_password: Optional[str] = None) -> None:
        self.root_password = root_password

    def mysql_command(self, arguments: str) -> str:
        if self.root_password:
            return f"sudo --preserve-env=MYSQL_PWD mysql -uroot {arguments}"
        return f"sudo mysql -uroot {arguments}"

    def mysql_env(self) -> Dict[str, str]:
        return {"MYSQL_PWD": self.root_password} if self.root_password else {}


@register(ActionKind.INSTALL_MYSQL)
class InstallMySQL(ProvisioningAction):

    description = "Install MySQL server"

    def execute(self, context: ActionContext) -> None:
        context.run("sudo apt-get install -y -qq mysql-server")


@register(ActionKind.RESOLVE_CREDENTIALS)
class ResolveCredentials(ProvisioningAction):
    """Reuse credentials from an existing ``.env`` or ask for new ones."""

    description = "Resolve database credentials"

    def __init__(self, repo_path: Path, reconciler: Optional[CredentialReconciler] = None) -> None:
        self.repo_path = Path(repo_path)
        self.reconciler = reconciler or CredentialReconciler()

    def execute(self, context: ActionContext) -> None:
        from ..questionnaire import ask_database_credentials, locate_env_file

        interaction = context.interaction
        credential = None
        env_path = locate_env_file(interaction, self.repo_path)
        if env_path:
            interaction.notify(f"Using .env file at {env_path}")
            credential = self.reconciler.extract_from(env_path)
            if credential is None:
                interaction.notify("No valid MySQL credentials found in .env file", level="warning")

        if credential is None:
            credential = ask_database_credentials(interaction, self.repo_path)
        context.shared[CREDENTIAL] = credential.validate()
        logger.info("Using database %s for user %s", credential.database, credential.user)


@register(ActionKind.PROVISION_DATABASE)
class ProvisionDatabase(_MySQLAction):

    description = "Configure MySQL"

    @staticmethod
    def statements(credential: Credential) -> str:
        database = quote_identifier(credential.database)
        account = f"{quote_literal(credential.user)}@'localhost'"
        return " ".join([
            f"CREATE DATABASE IF NOT EXISTS {database};",
            f"CREATE USER IF NOT EXISTS {account} IDENTIFIED BY {quote_literal(credential.password)};",
            f"GRANT ALL PRIVILEGES ON {database}.* TO {account};",
            "FLUSH PRIVILEGES;",
        ])

    def execute(self, context: ActionContext) -> None:
        credential = _credential(context)
        sql = self.statements(credential)
        context.run(self.mysql_command(f"-e {shlex.quote(sql)}"), env=self.mysql_env())


@register(ActionKind.WRITE_CREDENTIALS)
class WriteCredentials(ProvisioningAction):
    """Merge the resolved credential into the ``.env`` next to the app."""

    description = "Save database settings to .env"

    def __init__(self, env_path: Path, reconciler: Optional[CredentialReconciler] = None) -> None:
        self.env_path = Path(env_path)
        self.reconciler = reconciler or CredentialReconciler()

    def execute(self, context: ActionContext) -> None:
        credential = _credential(context)
        self.reconciler.persist(self.env_path, credential)
        context.interaction.notify(
            "Database credentials:\n"
            f"- Database: {credential.database}\n"
            f"- Username: {credential.user}\n"
            f"- Password: {mask_secret(credential.password)}\n"
            f"These credentials have been saved to {self.env_path}",
            level="success",
        )


@register(ActionKind.IMPORT_SQL)
class ImportSQL(_MySQLAction):
    """Optionally load an SQL dump into the freshly created database."""

    description = "Import SQL file"

    def __init__(self, root_password: Optional[str] = None, base_dir: Optional[Path] = None) -> None:
        super().__init__(root_password)
        self.base_dir = base_dir

    def execute(self, context: ActionContext) -> None:
        interaction = context.interaction
        if not interaction.ask_confirm("Do you want to import an SQL file?", default=False):
            return

        base_dir = self.base_dir or context.working_dir

        def _resolve(value: str) -> Path:
            candidate = Path(value).expanduser()
            return candidate if candidate.is_absolute() else base_dir / candidate

        def _exists(value: str) -> Optional[str]:
            if not value:
                return "Please provide a path"
            return None if _resolve(value).is_file() else "File does not exist"

        sql_path = _resolve(interaction.ask_text("Path to SQL file to import:", validator=_exists))
        credential = _credential(context)
        interaction.notify(f"Importing SQL file to database {credential.database}...")
        context.run(
            self.mysql_command(
                f"{shlex.quote(credential.database)} < {shlex.quote(str(sql_path))}"
            ),
            env=self.mysql_env(),
        )
        interaction.notify("SQL import completed!", level="success")
