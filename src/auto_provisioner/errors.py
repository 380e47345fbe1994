"""Exception hierarchy shared by the provisioning subsystems."""

from __future__ import annotations

from typing import Optional


class ProvisioningError(Exception):
    """Base class for every error raised by Auto-Provisioner."""


class ActionFailedError(ProvisioningError):
    """An external provisioning action reported failure."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)


class CredentialValidationError(ProvisioningError):
    """Credential data is incomplete or does not meet the password policy."""


class CredentialStoreError(ProvisioningError):
    """The environment file could not be written."""


class ReleaseError(ProvisioningError):
    """Base class for release deployment failures."""


class ReleaseFetchError(ReleaseError):
    """Fetching application code into a release directory failed."""


class ReleaseLinkError(ReleaseError):
    """The current-release link could not be switched."""


class ReleaseCollisionError(ReleaseError):
    """A release with the same version id already exists."""


class PipelineAborted(ProvisioningError):
    """A required pipeline step failed and the run was aborted."""

    def __init__(self, step_name: str, reason: str) -> None:
        self.step_name = step_name
        self.reason = reason
        super().__init__(f"Step '{step_name}' failed: {reason}")


class InteractionError(ProvisioningError):
    """A question could not be answered with a valid value."""


class ConfigurationError(ProvisioningError):
    """The configuration file is missing or malformed."""
