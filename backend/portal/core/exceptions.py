"""Portal error taxonomy.

Every error carries the HTTP status it is surfaced with and renders as
``{"error": ..., "message": ...}``.
"""

from typing import Any

from fastapi import status


class PortalError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        error: str,
        message: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or error)
        self.error = error
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        body.update(self.extra)
        return body


class InvalidRequestError(PortalError):
    """Malformed input: bad name, bad batch, malformed JSON, missing field."""

    status_code = status.HTTP_400_BAD_REQUEST


class ResourceNotFoundError(PortalError):
    """The addressed resource does not exist at the provider."""

    status_code = status.HTTP_404_NOT_FOUND


class ConfigurationError(PortalError):
    """A required configuration value is missing."""

    def __init__(self, message: str) -> None:
        super().__init__("Server configuration error", message)


class RemoteOperationError(PortalError):
    """The cloud provider call failed."""


class FeatureNotImplementedError(PortalError):
    """A documented capability gap (surfaced as 501)."""

    status_code = status.HTTP_501_NOT_IMPLEMENTED


def describe_remote_error(exc: BaseException) -> str:
    """
    Extract a human readable reason from a provider exception.

    Azure SDK errors expose ``message``; anything else falls back to ``str()``.
    """
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or exc.__class__.__name__
