"""User interaction handlers."""

from __future__ import annotations

import getpass
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..errors import InteractionError

logger = logging.getLogger(__name__)

# Returns an error message for invalid input, or None when the input is fine.
Validator = Callable[[str], Optional[str]]


class InputType(str, Enum):
    """Type of user input expected."""
    CHOICE = "choice"
    TEXT = "text"
    CONFIRM = "confirm"
    SECRET = "secret"


@dataclass
class InteractionRequest:
    """A question put to the operator."""

    question: str
    input_type: InputType = InputType.TEXT
    options: List[str] = field(default_factory=list)
    default: Optional[str] = None
    validator: Optional[Validator] = None

    def format_prompt(self) -> str:
        lines = [f"\n? {self.question}"]
        if self.input_type == InputType.CHOICE and self.options:
            for i, option in enumerate(self.options, 1):
                marker = " (default)" if option == self.default else ""
                lines.append(f"  [{i}] {option}{marker}")
        return "\n".join(lines)

    def validate(self, value: str) -> Optional[str]:
        if self.validator is None:
            return None
        return self.validator(value)


@dataclass
class InteractionResponse:
    """Operator's answer to an interaction request."""

    value: str
    selected_option: Optional[int] = None
    cancelled: bool = False

    @classmethod
    def from_choice(cls, option_index: int, options: List[str]) -> "InteractionResponse":
        if 1 <= option_index <= len(options):
            return cls(value=options[option_index - 1], selected_option=option_index)
        raise ValueError(f"Invalid option index: {option_index}")

    @classmethod
    def cancelled_response(cls) -> "InteractionResponse":
        return cls(value="", cancelled=True)

    @property
    def confirmed(self) -> bool:
        return not self.cancelled and self.value.lower() in ("y", "yes")


class UserInteractionHandler(ABC):
    """Abstract base class for handling user interactions."""

    @abstractmethod
    def ask(self, request: InteractionRequest) -> InteractionResponse:
        """Present ``request`` and return the operator's response."""

    @abstractmethod
    def notify(self, message: str, level: str = "info") -> None:
        """Show a message that needs no answer."""

    def ask_text(
        self,
        question: str,
        default: Optional[str] = None,
        validator: Optional[Validator] = None,
    ) -> str:
        response = self.ask(InteractionRequest(
            question=question,
            input_type=InputType.TEXT,
            default=default,
            validator=validator,
        ))
        return response.value

    def ask_secret(self, question: str, validator: Optional[Validator] = None) -> str:
        response = self.ask(InteractionRequest(
            question=question,
            input_type=InputType.SECRET,
            validator=validator,
        ))
        return response.value

    def ask_confirm(self, question: str, default: bool = False) -> bool:
        response = self.ask(InteractionRequest(
            question=question,
            input_type=InputType.CONFIRM,
            default="yes" if default else "no",
        ))
        return response.confirmed

    def ask_choice(self, question: str, options: List[str], default: Optional[str] = None) -> str:
        response = self.ask(InteractionRequest(
            question=question,
            input_type=InputType.CHOICE,
            options=options,
            default=default or (options[0] if options else None),
        ))
        return response.value


class CLIInteractionHandler(UserInteractionHandler):
    """Terminal prompts using ``input`` and ``getpass``."""

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        print(request.format_prompt())
        try:
            while True:
                if request.input_type == InputType.CHOICE:
                    response = self._handle_choice(request)
                elif request.input_type == InputType.CONFIRM:
                    response = self._handle_confirm(request)
                elif request.input_type == InputType.SECRET:
                    response = InteractionResponse(value=getpass.getpass("  > "))
                else:
                    response = self._handle_text(request)

                if response is None:
                    continue
                error = request.validate(response.value)
                if error is None:
                    return response
                print(f"  ! {error}")
        except EOFError:
            print("\n  (cancelled)")
            return InteractionResponse.cancelled_response()

    def _handle_choice(self, request: InteractionRequest) -> Optional[InteractionResponse]:
        hint = ""
        if request.default in request.options:
            hint = f" [{request.options.index(request.default) + 1}]"
        user_input = input(f"  Select{hint}: ").strip()
        if not user_input and request.default is not None:
            return InteractionResponse(value=request.default)
        if user_input in request.options:
            return InteractionResponse(value=user_input)
        try:
            return InteractionResponse.from_choice(int(user_input), request.options)
        except ValueError:
            print(f"  ! Enter a number between 1 and {len(request.options)}")
            return None

    def _handle_confirm(self, request: InteractionRequest) -> Optional[InteractionResponse]:
        default = request.default or "no"
        user_input = input(f"  [y/n] (default: {default}): ").strip().lower() or default
        if user_input in ("y", "yes"):
            return InteractionResponse(value="yes")
        if user_input in ("n", "no"):
            return InteractionResponse(value="no")
        print("  ! Please answer y or n")
        return None

    def _handle_text(self, request: InteractionRequest) -> InteractionResponse:
        hint = f" ({request.default})" if request.default else ""
        user_input = input(f"  >{hint} ").strip()
        if not user_input and request.default is not None:
            user_input = request.default
        return InteractionResponse(value=user_input)

    def notify(self, message: str, level: str = "info") -> None:
        icons = {
            "info": "ℹ️",
            "warning": "⚠️",
            "error": "❌",
            "success": "✅",
        }
        print(f"{icons.get(level, '•')} {message}")


class AutoResponseHandler(UserInteractionHandler):
    """
    Non-interactive handler for ``--yes`` runs and tests.

    Answers come from ``responses`` (matched by case-insensitive substring of
    the question), then from the request default, then from the first option.
    ``always_confirm`` forces every confirmation to yes or no instead of its
    default. Automatic answers go through the question's validator; one that
    fails raises ``InteractionError``.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, str]] = None,
        always_confirm: Optional[bool] = None,
    ) -> None:
        self.responses = responses or {}
        self.always_confirm = always_confirm
        self.notifications: List[tuple] = []

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        response = self._answer(request)
        error = request.validate(response.value)
        if error is not None:
            raise InteractionError(f"No valid answer for '{request.question}': {error}")
        return response

    def _answer(self, request: InteractionRequest) -> InteractionResponse:
        for keyword, value in self.responses.items():
            if keyword.lower() in request.question.lower():
                return InteractionResponse(value=value)

        if request.input_type == InputType.CONFIRM and self.always_confirm is not None:
            return InteractionResponse(value="yes" if self.always_confirm else "no")
        if request.default is not None:
            return InteractionResponse(value=request.default)
        if request.input_type == InputType.CONFIRM:
            return InteractionResponse(value="no")
        if request.input_type == InputType.CHOICE and request.options:
            return InteractionResponse.from_choice(1, request.options)
        return InteractionResponse(value="")

    def notify(self, message: str, level: str = "info") -> None:
        self.notifications.append((level, message))
        logger.info("[%s] %s", level, message)
