"""Provisioning actions and the registry that builds them by kind.

Importing this package registers every built-in action with
``default_registry``.
"""

from .base import ActionContext, ProvisioningAction
from .registry import ActionKind, ActionRegistry, default_registry, register
from . import database, deploy, keys, runtime, web  # noqa: F401  (registration)

__all__ = [
    "ActionContext",
    "ActionKind",
    "ActionRegistry",
    "ProvisioningAction",
    "default_registry",
    "register",
]
