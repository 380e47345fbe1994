"""Database credential extraction and ``.env`` reconciliation."""

from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from ..errors import CredentialValidationError
from .config_file import ConfigFile, quote_value

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 12

# Alias keys per credential field, most preferred first.
CREDENTIAL_ALIASES: Mapping[str, Sequence[str]] = {
    "user": ("DB_USERNAME", "MYSQL_USER", "DATABASE_USER", "DB_USER"),
    "password": ("DB_PASSWORD", "MYSQL_PASSWORD", "DATABASE_PASSWORD", "DB_PASS"),
    "database": ("DB_DATABASE", "MYSQL_DATABASE", "DATABASE_NAME", "DB_NAME"),
}

MANAGED_PREFIX = "DB_"


@dataclass(frozen=True)
class Credential:
    """Database user credential; complete or rejected."""

    user: str
    password: str
    database: str
    role: str = "database-user"

    def validate(self, min_password_length: int = 0) -> "Credential":
        missing = [name for name in ("user", "password", "database") if not getattr(self, name)]
        if missing:
            raise CredentialValidationError(f"Missing credential fields: {', '.join(missing)}")
        if len(self.password) < min_password_length:
            raise CredentialValidationError(
                f"Password must be at least {min_password_length} characters"
            )
        return self

    @classmethod
    def generate(cls, database: str, user: str = "app_user", length: int = 24) -> "Credential":
        return cls(user=user, password=secrets.token_urlsafe(length)[:length], database=database)


@dataclass(frozen=True)
class ConnectionSettings:
    connection: str = "mysql"
    host: str = "127.0.0.1"
    port: int = 3306


def database_name_for(path: Union[str, Path]) -> str:
    """Default database name derived from a project directory name."""
    name = re.sub(r"[^a-z0-9_]", "_", Path(path).resolve().name, flags=re.IGNORECASE).lower()
    return name or "app"


class CredentialReconciler:
    """
    Owns the ``DB_*`` keys of an environment file.

    ``extract`` finds a complete credential under any known alias.
    ``reconcile`` drops every managed line and appends the canonical set in a
    fixed order, so repeated passes with the same credential produce the same
    bytes and never touch foreign keys.
    """

    def __init__(
        self,
        aliases: Mapping[str, Sequence[str]] = CREDENTIAL_ALIASES,
        managed_prefix: str = MANAGED_PREFIX,
        settings: ConnectionSettings = ConnectionSettings(),
    ) -> None:
        self.aliases = aliases
        self.managed_prefix = managed_prefix
        self.settings = settings

    def is_managed(self, key: str) -> bool:
        return key.startswith(self.managed_prefix)

    def extract(self, config: Optional[ConfigFile]) -> Optional[Credential]:
        if config is None:
            return None
        values = config.values()
        found: Dict[str, str] = {}
        for field_name, keys in self.aliases.items():
            for key in keys:
                if values.get(key):
                    found[field_name] = values[key]
                    break
        if len(found) != len(self.aliases):
            logger.debug("Incomplete credentials, found only: %s", ", ".join(sorted(found)))
            return None
        return Credential(**found)

    def extract_from(self, path: Union[str, Path]) -> Optional[Credential]:
        return self.extract(ConfigFile.load(path))

    def managed_lines(self, credential: Credential) -> List[str]:
        return [
            f"DB_CONNECTION={self.settings.connection}",
            f"DB_HOST={self.settings.host}",
            f"DB_PORT={self.settings.port}",
            f"DB_DATABASE={quote_value(credential.database)}",
            f"DB_USERNAME={quote_value(credential.user)}",
            f"DB_PASSWORD={quote_value(credential.password)}",
        ]

    def reconcile(self, existing: Optional[ConfigFile], credential: Credential) -> ConfigFile:
        credential.validate()
        base = existing.without(self.is_managed) if existing else ConfigFile()
        return ConfigFile(base.lines + self.managed_lines(credential))

    def persist(self, path: Union[str, Path], credential: Credential) -> ConfigFile:
        """Reconcile the file at ``path`` and write it back owner-only."""
        merged = self.reconcile(ConfigFile.read(path), credential)
        merged.save(path)
        logger.info("Saved database settings to %s", path)
        return merged
