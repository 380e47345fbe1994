"""Registry of provisioning action kinds."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Type, TypeVar

from .base import ProvisioningAction


class ActionKind(str, Enum):
    """Closed set of actions the workflow can schedule."""
    INSTALL_BASE_PACKAGES = "install_base_packages"
    INSTALL_PHP = "install_php"
    INSTALL_PHP_EXTENSIONS = "install_php_extensions"
    INSTALL_NODE = "install_node"
    INSTALL_PACKAGE_MANAGER = "install_package_manager"
    GENERATE_DEPLOY_KEY = "generate_deploy_key"
    CONFIRM_DEPLOY_KEY = "confirm_deploy_key"
    CONFIGURE_NGINX = "configure_nginx"
    REQUEST_CERTIFICATE = "request_certificate"
    DEPLOY_RELEASE = "deploy_release"
    START_NODE_APP = "start_node_app"
    INSTALL_MYSQL = "install_mysql"
    RESOLVE_CREDENTIALS = "resolve_credentials"
    PROVISION_DATABASE = "provision_database"
    WRITE_CREDENTIALS = "write_credentials"
    IMPORT_SQL = "import_sql"


A = TypeVar("A", bound=Type[ProvisioningAction])


class ActionRegistry:
    """Maps each ``ActionKind`` to the class implementing it."""

    def __init__(self) -> None:
        self._actions: Dict[ActionKind, Type[ProvisioningAction]] = {}

    def register(self, kind: ActionKind) -> Callable[[A], A]:
        def decorator(action_cls: A) -> A:
            if kind in self._actions:
                raise ValueError(f"Action kind already registered: {kind.value}")
            self._actions[kind] = action_cls
            return action_cls
        return decorator

    def create(self, kind: ActionKind, **params: Any) -> ProvisioningAction:
        try:
            action_cls = self._actions[kind]
        except KeyError:
            raise KeyError(f"No action registered for {kind.value}") from None
        return action_cls(**params)

    def get(self, kind: ActionKind) -> Type[ProvisioningAction]:
        return self._actions[kind]

    def __contains__(self, kind: object) -> bool:
        return kind in self._actions

    def kinds(self) -> list:
        return list(self._actions)


default_registry = ActionRegistry()
register = default_registry.register
