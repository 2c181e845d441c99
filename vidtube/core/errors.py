"""Error taxonomy shared by services and HTTP handlers."""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Base error carrying an HTTP status code and a user-facing message."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None, errors: list[Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or []

    def to_payload(self) -> dict[str, Any]:
        """Render the uniform error envelope."""

        payload: dict[str, Any] = {
            "statusCode": self.status_code,
            "message": self.message,
            "success": False,
        }
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(ApiError):
    """Raised when required input is missing or empty."""

    status_code = 400


class UnauthorizedError(ApiError):
    """Raised for bad credentials and missing, invalid or reused tokens."""

    status_code = 401


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    """Raised when a username or email is already registered."""

    status_code = 409


class InternalError(ApiError):
    status_code = 500


class TokenGenerationError(InternalError):
    """Raised when a token pair cannot be issued or persisted; chained to the cause."""

    def __init__(self, message: str = "Error generating access and refresh token") -> None:
        super().__init__(message)


class UpstreamError(ApiError):
    """Raised when the media upload service fails."""

    status_code = 502
