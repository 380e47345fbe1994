"""Configuration loading utilities for Auto-Provisioner."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/provisioner.json")


def _known_keys(cls: type, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop comment keys (leading ``_``) and keys the dataclass does not declare."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (payload or {}).items() if not k.startswith("_") and k in names}


@dataclass
class ProvisionConfig:
    """Defaults offered by the setup questionnaire."""

    deploy_dir: str = "/var/www/app"
    domain: str = ""
    app_type: str = "php"
    php_version: str = "8.2"
    node_port: int = 3000
    repo_url: str = ""
    link_name: str = "current"
    ssh_dir: str = "~/.ssh"


@dataclass
class DatabaseConfig:
    """MySQL settings; without a root password the client uses socket auth."""

    root_password: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 3306


@dataclass
class InteractionConfig:
    """Configuration for user interaction."""

    mode: str = "cli"  # "cli" | "auto"
    auto_confirm: bool = False  # auto mode: say yes to every confirmation


@dataclass
class LoggingConfig:

    log_dir: str = "provision_logs"
    verbose: bool = False


@dataclass
class AppConfig:
    """Top-level configuration."""

    provision: ProvisionConfig = field(default_factory=ProvisionConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        return cls(
            provision=ProvisionConfig(
                **{**ProvisionConfig().__dict__, **_known_keys(ProvisionConfig, payload.get("provision"))}
            ),
            database=DatabaseConfig(
                **{**DatabaseConfig().__dict__, **_known_keys(DatabaseConfig, payload.get("database"))}
            ),
            interaction=InteractionConfig(
                **{**InteractionConfig().__dict__, **_known_keys(InteractionConfig, payload.get("interaction"))}
            ),
            logging=LoggingConfig(
                **{**LoggingConfig().__dict__, **_known_keys(LoggingConfig, payload.get("logging"))}
            ),
        )


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    env_deploy_dir = os.getenv("AUTO_PROVISIONER_DEPLOY_DIR")
    if env_deploy_dir:
        config.provision.deploy_dir = env_deploy_dir

    env_domain = os.getenv("AUTO_PROVISIONER_DOMAIN")
    if env_domain:
        config.provision.domain = env_domain

    env_root_password = os.getenv("AUTO_PROVISIONER_MYSQL_ROOT_PASSWORD")
    if env_root_password:
        config.database.root_password = env_root_password

    env_mode = os.getenv("AUTO_PROVISIONER_INTERACTION_MODE")
    if env_mode:
        config.interaction.mode = env_mode

    env_log_dir = os.getenv("AUTO_PROVISIONER_LOG_DIR")
    if env_log_dir:
        config.logging.log_dir = env_log_dir
    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    Unlike an explicit `path`, the default file is optional; built-in
    defaults are used when it is missing.

    Environment variables (higher priority than config file):
    - AUTO_PROVISIONER_DEPLOY_DIR: Default release base path
    - AUTO_PROVISIONER_DOMAIN: Default domain name
    - AUTO_PROVISIONER_MYSQL_ROOT_PASSWORD: MySQL root password
    - AUTO_PROVISIONER_INTERACTION_MODE: "cli" or "auto"
    - AUTO_PROVISIONER_LOG_DIR: Directory for JSON run logs
    """

    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise ConfigurationError(f"Could not find configuration file: {candidate}")
    else:
        candidate = _DEFAULT_CONFIG_PATH

    if candidate.is_file():
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid JSON in {candidate}: {exc}") from exc
        config = AppConfig.from_dict(data or {})
    else:
        config = AppConfig()

    return _apply_env_overrides(config)
