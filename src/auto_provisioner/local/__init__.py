"""Local command execution on the machine being provisioned."""

from .session import LocalCommandResult, LocalSession

__all__ = ["LocalSession", "LocalCommandResult"]
