from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    RATE_LIMITED = "RateLimited"
    AUTHENTICATION_EXPIRED = "AuthenticationExpired"
    FORBIDDEN = "Forbidden"
    NETWORK_UNAVAILABLE = "NetworkUnavailable"
    TIMEOUT = "Timeout"
    SERVER_ERROR = "ServerError"
    VALIDATION_FAILED = "ValidationFailed"
    UNKNOWN = "Unknown"


class ClientError(RuntimeError):
    """Base class for every failure the API client surfaces to callers.

    Only the category, a user-safe message and the HTTP status (when a
    response was received) cross this boundary.
    """

    category = ErrorCategory.UNKNOWN
    default_message = "An unexpected error occurred. Please try again."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(category={self.category.value!r}, "
            f"message={self.message!r}, status_code={self.status_code!r})"
        )


class RateLimitedError(ClientError):
    category = ErrorCategory.RATE_LIMITED

    def __init__(
        self,
        retry_after: int,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(
            message or f"Too many requests. Please wait {retry_after} seconds and try again.",
            status_code=status_code,
        )


class AuthenticationExpiredError(ClientError):
    category = ErrorCategory.AUTHENTICATION_EXPIRED
    default_message = "Authentication failed. Please check your credentials."


class ForbiddenError(ClientError):
    category = ErrorCategory.FORBIDDEN
    default_message = "You do not have permission to perform this action."


class NetworkUnavailableError(ClientError):
    category = ErrorCategory.NETWORK_UNAVAILABLE
    default_message = "Unable to reach the server. Please check your connection and try again."


class RequestTimeoutError(ClientError):
    category = ErrorCategory.TIMEOUT
    default_message = (
        "The server took too long to respond. It may be starting up, "
        "please try again in a moment."
    )


class ServerError(ClientError):
    category = ErrorCategory.SERVER_ERROR
    default_message = "An internal server error occurred. Please try again later."


class ValidationFailedError(ClientError):
    category = ErrorCategory.VALIDATION_FAILED
    default_message = "Validation error occurred"

    def __init__(
        self,
        field_errors: dict[str, list[str]] | None = None,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        self.field_errors = dict(field_errors or {})
        super().__init__(
            message or flatten_field_errors(self.field_errors) or None,
            status_code=status_code,
        )


class UnknownClientError(ClientError):
    category = ErrorCategory.UNKNOWN


def flatten_field_errors(errors: dict) -> str:
    messages: list[str] = []
    for key, value in errors.items():
        if isinstance(value, list):
            messages.append(f"{key}: {', '.join(str(item) for item in value)}")
        elif isinstance(value, str):
            messages.append(value)
    return "\n".join(messages)
