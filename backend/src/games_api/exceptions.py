"""Errors raised by the games API and the status codes they map to.

Handlers let these propagate to ``safe_handler``, which turns them into
``{"error": ..., "detail": ...}`` responses. Anything that is not an
``AppError`` becomes a generic 500.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class AppError(Exception):
    """Base class for errors with an HTTP status.

    Subclasses set ``status_code`` and, where one makes sense,
    ``default_message``.

    Attributes:
        message: Text returned to the client.
        status_code: HTTP status of the response.
        detail: Extra context returned next to the message.
    """

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class ValidationError(AppError):
    """Bad request input: body, path or query string."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, detail=f"Field: {field}" if field else None)
        self.field = field


class NotFoundError(AppError):
    """A game or profile lookup found nothing."""

    status_code = 404

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class AuthenticationError(AppError):
    """The token cookie is missing, expired or rejected."""

    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(AppError):
    """The caller is signed in but does not own the target record."""

    status_code = 403
    default_message = "Forbidden"


class ConflictError(AppError):
    """A create collides with an existing email, username or game key."""

    status_code = 409


class DependencyError(AppError):
    """DynamoDB, Cognito or Translate failed.

    Only the generic message reaches the client; the cause is logged.
    """


class ConfigurationError(AppError):
    """A required environment variable is unset."""

    def __init__(self, config_name: str):
        super().__init__(f"Missing required configuration: {config_name}")
        self.config_name = config_name
