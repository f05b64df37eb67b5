from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .exceptions import (
    ApiError,
    ForbiddenError,
    InvalidCredentialsError,
    LocationPermissionError,
    NetworkError,
    NotFoundError,
    RoleMismatchError,
    TrackingError,
    UnauthorizedError,
    ValidationError,
)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    INVALID_CREDENTIALS = "invalid_credentials"
    ROLE_MISMATCH = "role_mismatch"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    NETWORK = "network"
    SERVER = "server"


_MESSAGES = {
    ErrorKind.VALIDATION: "Please check the information you entered.",
    ErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorKind.ROLE_MISMATCH: "Access denied. This app is for riders only.",
    ErrorKind.UNAUTHORIZED: "Your session has expired. Please log in again.",
    ErrorKind.NOT_FOUND: "The requested delivery could not be found.",
    ErrorKind.PERMISSION: "Permission to access location was denied",
    ErrorKind.NETWORK: "Network error. Please check your internet connection.",
    ErrorKind.SERVER: "Something went wrong on our side. Please try again.",
}

_RETRYABLE = {ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.PERMISSION}


@dataclass(frozen=True)
class UserFacingError:
    kind: ErrorKind
    message: str
    details: str | None = None

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE


def _kind_for(exc: BaseException) -> ErrorKind:
    # Order matters: specific subclasses before their bases.
    if isinstance(exc, InvalidCredentialsError):
        return ErrorKind.INVALID_CREDENTIALS
    if isinstance(exc, RoleMismatchError):
        return ErrorKind.ROLE_MISMATCH
    if isinstance(exc, UnauthorizedError):
        return ErrorKind.UNAUTHORIZED
    if isinstance(exc, (LocationPermissionError, ForbiddenError)):
        return ErrorKind.PERMISSION
    if isinstance(exc, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(exc, NetworkError):
        return ErrorKind.NETWORK
    return ErrorKind.SERVER


def classify_error(exc: BaseException, fallback: str | None = None) -> UserFacingError:
    """Reduce any failure to one deterministic, human-readable message."""
    kind = _kind_for(exc)
    message = _MESSAGES[kind]
    if kind is ErrorKind.SERVER and fallback:
        message = fallback
    if kind is ErrorKind.VALIDATION and isinstance(exc, ApiError) and exc.message.strip():
        message = exc.message.strip()
    if isinstance(exc, TrackingError) and not isinstance(exc, LocationPermissionError):
        message = exc.message or "Failed to start location tracking"
    details = None
    if isinstance(exc, ApiError):
        details = f"{exc.code} (HTTP {exc.status_code})"
        if exc.details:
            details = f"{details}: {exc.details}"
    elif isinstance(exc, TrackingError):
        details = exc.code
    return UserFacingError(kind=kind, message=message, details=details)
