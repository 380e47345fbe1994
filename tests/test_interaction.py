"""Tests for user interaction module."""

import pytest

from auto_provisioner.errors import InteractionError
from auto_provisioner.interaction import (
    AutoResponseHandler,
    CLIInteractionHandler,
    InputType,
    InteractionRequest,
    InteractionResponse,
)


def _feed(monkeypatch, *answers):
    """Make ``input()`` return ``answers`` in order."""
    replies = iter(answers)

    def fake_input(prompt=""):
        value = next(replies)
        if isinstance(value, BaseException):
            raise value
        return value

    monkeypatch.setattr("builtins.input", fake_input)


class TestInteractionRequest:

    def test_format_prompt_choice(self):
        request = InteractionRequest(
            question="Select application type:",
            input_type=InputType.CHOICE,
            options=["php", "nodejs"],
            default="nodejs",
        )
        prompt = request.format_prompt()
        assert "Select application type:" in prompt
        assert "[1] php" in prompt
        assert "[2] nodejs (default)" in prompt

    def test_validate_without_validator(self):
        assert InteractionRequest(question="q").validate("anything") is None

    def test_validate_with_validator(self):
        request = InteractionRequest(question="q", validator=lambda v: None if v else "required")
        assert request.validate("") == "required"
        assert request.validate("x") is None


class TestInteractionResponse:

    def test_from_choice(self):
        response = InteractionResponse.from_choice(2, ["npm", "yarn", "pnpm"])
        assert response.value == "yarn"
        assert response.selected_option == 2

    def test_from_choice_out_of_range(self):
        with pytest.raises(ValueError):
            InteractionResponse.from_choice(4, ["npm", "yarn", "pnpm"])

    def test_confirmed(self):
        assert InteractionResponse(value="yes").confirmed
        assert InteractionResponse(value="Y").confirmed
        assert not InteractionResponse(value="no").confirmed
        assert not InteractionResponse.cancelled_response().confirmed


class TestAutoResponseHandler:

    def test_keyword_response(self):
        handler = AutoResponseHandler(responses={"repository url": "git@example.com:a/b.git"})
        assert handler.ask_text("Enter Git repository URL:") == "git@example.com:a/b.git"

    def test_confirm_uses_default_unless_forced(self):
        assert AutoResponseHandler().ask_confirm("Continue?") is False
        assert AutoResponseHandler().ask_confirm("Continue?", default=True) is True
        assert AutoResponseHandler(always_confirm=True).ask_confirm("Continue?") is True
        assert AutoResponseHandler(always_confirm=False).ask_confirm("Continue?", default=True) is False

    def test_automatic_answer_is_validated(self):
        def required(value):
            return None if value else "A value is required"

        handler = AutoResponseHandler()
        with pytest.raises(InteractionError):
            handler.ask_text("Enter Git repository URL:", validator=required)
        assert handler.ask_text("Enter Git repository URL:", default="r", validator=required) == "r"

    def test_keyword_response_is_validated(self):
        handler = AutoResponseHandler(responses={"port": "abc"})
        with pytest.raises(InteractionError):
            handler.ask_text("Port:", validator=lambda value: None if value.isdigit() else "Not a number")

    def test_default_then_first_option(self):
        handler = AutoResponseHandler()
        assert handler.ask_text("Enter PHP version:", default="8.3") == "8.3"
        assert handler.ask_choice("Pick:", ["a", "b"]) == "a"
        assert handler.ask_choice("Pick:", ["a", "b"], default="b") == "b"
        assert handler.ask_secret("Password:") == ""

    def test_notifications_recorded(self):
        handler = AutoResponseHandler()
        handler.notify("hello", level="warning")
        assert handler.notifications == [("warning", "hello")]


class TestCLIInteractionHandler:

    def test_text_uses_default_on_blank(self, monkeypatch):
        _feed(monkeypatch, "")
        assert CLIInteractionHandler().ask_text("Domain:", default="example.com") == "example.com"

    def test_choice_by_number_and_name(self, monkeypatch):
        _feed(monkeypatch, "2", "pnpm")
        handler = CLIInteractionHandler()
        options = ["npm", "yarn", "pnpm"]
        assert handler.ask_choice("Package manager:", options) == "yarn"
        assert handler.ask_choice("Package manager:", options) == "pnpm"

    def test_choice_retries_on_invalid_number(self, monkeypatch):
        _feed(monkeypatch, "9", "abc", "1")
        assert CLIInteractionHandler().ask_choice("Pick:", ["php", "nodejs"]) == "php"

    def test_confirm_retries_until_yes_or_no(self, monkeypatch):
        _feed(monkeypatch, "maybe", "y")
        assert CLIInteractionHandler().ask_confirm("Done?") is True

    def test_confirm_default(self, monkeypatch):
        _feed(monkeypatch, "")
        assert CLIInteractionHandler().ask_confirm("Done?", default=False) is False

    def test_validator_reprompts(self, monkeypatch):
        _feed(monkeypatch, "", "app_user")
        value = CLIInteractionHandler().ask_text(
            "Username:", validator=lambda v: None if v else "required"
        )
        assert value == "app_user"

    def test_secret_uses_getpass(self, monkeypatch):
        monkeypatch.setattr(
            "auto_provisioner.interaction.handler.getpass.getpass", lambda prompt="": "s3cret-password"
        )
        assert CLIInteractionHandler().ask_secret("Password:") == "s3cret-password"

    def test_eof_cancels(self, monkeypatch):
        _feed(monkeypatch, EOFError())
        response = CLIInteractionHandler().ask(InteractionRequest(question="q"))
        assert response.cancelled

    def test_keyboard_interrupt_propagates(self, monkeypatch):
        _feed(monkeypatch, KeyboardInterrupt())
        with pytest.raises(KeyboardInterrupt):
            CLIInteractionHandler().ask_text("q")
