"""User interaction for the provisioning questionnaire and progress output."""

from .handler import (
    AutoResponseHandler,
    CLIInteractionHandler,
    InputType,
    InteractionRequest,
    InteractionResponse,
    UserInteractionHandler,
)

__all__ = [
    "UserInteractionHandler",
    "InteractionRequest",
    "InteractionResponse",
    "CLIInteractionHandler",
    "AutoResponseHandler",
    "InputType",
]
