"""Error taxonomy for the deployment workflow.

Each fatal category maps to its own exception so the CLI can print a
category tag and pick a distinct exit code. Non-fatal verification issues
are not exceptions; they are collected as `VerificationWarning` models.
"""

from __future__ import annotations


class DeploymentWorkflowError(Exception):
    """Base class for every fatal error that aborts a run."""

    category = "DeploymentWorkflowError"
    exit_code = 1

    def __init__(self, message: str, *, provider_message: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider_message = provider_message

    def describe(self) -> str:
        """One-line diagnostic: `[Category] message` plus the provider text."""

        text = f"[{self.category}] {self.message}"
        if self.provider_message:
            text += f"\n{self.provider_message.strip()}"
        return text


class AuthError(DeploymentWorkflowError):
    """The provider reports no authenticated session."""

    category = "AuthError"
    exit_code = 3


class PreconditionError(DeploymentWorkflowError):
    """The target resource group is absent (it is never auto-created)."""

    category = "PreconditionError"
    exit_code = 4


class NotFoundError(DeploymentWorkflowError):
    """Template or parameters file missing."""

    category = "NotFoundError"
    exit_code = 5


class DeploymentError(DeploymentWorkflowError):
    """The provider rejected or failed the validate/apply call."""

    category = "DeploymentError"
    exit_code = 6


class MalformedResponseError(DeploymentWorkflowError):
    """Apply succeeded but the response lacks required outputs."""

    category = "MalformedResponseError"
    exit_code = 7


class PersistenceError(DeploymentWorkflowError):
    """The outputs file could not be written or read back."""

    category = "PersistenceError"
    exit_code = 8


class ProviderCommandError(Exception):
    """Raised by provider adapters when a CLI command exits non-zero."""

    def __init__(self, command: str, return_code: int, stderr: str) -> None:
        self.command = command
        self.return_code = return_code
        self.stderr = stderr
        super().__init__(f"`{command}` failed (exit {return_code}): {stderr.strip()}")
