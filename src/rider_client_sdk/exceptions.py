from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None = None
    status_code: int = 0
    raw_payload: object | None = None

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.code}: {self.message}"


class ValidationError(ApiError):
    """Bad local input or a 400/422 from the backend."""


class InvalidArgumentError(ValidationError):
    pass


class UnauthorizedError(ApiError):
    """401 from any endpoint; the session has already been torn down."""


class InvalidCredentialsError(ApiError):
    """Login rejected the email/password pair."""


class RoleMismatchError(ApiError):
    """Authenticated, but the account is not a rider."""


class ForbiddenError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class ServerError(ApiError):
    """5xx responses and malformed payloads."""


class NetworkError(ApiError):
    """No response was received (connectivity loss or timeout)."""


class TrackingError(Exception):
    def __init__(self, message: str, *, code: str = "TRACKING_FAILED") -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class LocationPermissionError(TrackingError):
    def __init__(self, message: str = "Permission to access location was denied") -> None:
        super().__init__(message, code="LOCATION_PERMISSION_DENIED")
