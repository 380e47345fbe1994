"""Database credentials and the environment file they are stored in."""

from .config_file import ConfigFile, quote_value
from .reconciler import (
    CREDENTIAL_ALIASES,
    MIN_PASSWORD_LENGTH,
    ConnectionSettings,
    Credential,
    CredentialReconciler,
    database_name_for,
)

__all__ = [
    "CREDENTIAL_ALIASES",
    "MIN_PASSWORD_LENGTH",
    "ConfigFile",
    "ConnectionSettings",
    "Credential",
    "CredentialReconciler",
    "database_name_for",
    "quote_value",
]
