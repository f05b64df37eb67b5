from __future__ import annotations

import pytest

from rider_client_sdk.error_mapper import map_error
from rider_client_sdk.exceptions import (
    ApiError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    LocationPermissionError,
    NetworkError,
    NotFoundError,
    RoleMismatchError,
    ServerError,
    TrackingError,
    UnauthorizedError,
    ValidationError,
)
from rider_client_sdk.ui_errors import ErrorKind, classify_error


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (401, UnauthorizedError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (400, ValidationError),
        (422, ValidationError),
        (409, ConflictError),
        (500, ServerError),
        (503, ServerError),
        (418, ApiError),
    ],
)
def test_error_mapper_classes(status: int, expected: type[ApiError]) -> None:
    err = map_error(status, {"code": "X", "message": "bad"})
    assert type(err) is expected
    assert err.status_code == status
    assert err.code == "X"


def test_error_mapper_defaults_and_details() -> None:
    err = map_error(500, None)
    assert err.code == "HTTP_ERROR"
    assert err.message == "Request failed"
    assert str(err) == "[500] HTTP_ERROR: Request failed"

    err = map_error(400, {"message": "bad", "error": "email is invalid"})
    assert err.details == "email is invalid"
    assert err.raw_payload == {"message": "bad", "error": "email is invalid"}


def _api(cls: type[ApiError], message: str = "raw message") -> ApiError:
    return cls(code="C", message=message, status_code=400)


@pytest.mark.parametrize(
    ("exc", "kind", "message"),
    [
        (_api(InvalidCredentialsError), ErrorKind.INVALID_CREDENTIALS, "Invalid email or password"),
        (_api(RoleMismatchError), ErrorKind.ROLE_MISMATCH, "Access denied. This app is for riders only."),
        (_api(UnauthorizedError), ErrorKind.UNAUTHORIZED, "Your session has expired. Please log in again."),
        (_api(ForbiddenError), ErrorKind.PERMISSION, "Permission to access location was denied"),
        (LocationPermissionError(), ErrorKind.PERMISSION, "Permission to access location was denied"),
        (_api(NotFoundError), ErrorKind.NOT_FOUND, "The requested delivery could not be found."),
        (_api(NetworkError), ErrorKind.NETWORK, "Network error. Please check your internet connection."),
        (_api(ServerError), ErrorKind.SERVER, "Something went wrong on our side. Please try again."),
        (RuntimeError("boom"), ErrorKind.SERVER, "Something went wrong on our side. Please try again."),
    ],
)
def test_classify_error_messages(exc: BaseException, kind: ErrorKind, message: str) -> None:
    error = classify_error(exc)
    assert error.kind is kind
    assert error.message == message


def test_classify_error_validation_uses_exception_message() -> None:
    error = classify_error(ValidationError(code="VALIDATION_ERROR", message="Email and password are required"))
    assert error.kind is ErrorKind.VALIDATION
    assert error.message == "Email and password are required"
    assert error.retryable is False


def test_classify_error_fallback_only_replaces_server_message() -> None:
    assert classify_error(_api(ServerError), fallback="Failed to fetch").message == "Failed to fetch"
    network = classify_error(_api(NetworkError), fallback="Failed to fetch")
    assert network.message == "Network error. Please check your internet connection."
    assert network.retryable is True


def test_classify_tracking_error_keeps_its_message() -> None:
    error = classify_error(TrackingError("Failed to start location tracking"))
    assert error.kind is ErrorKind.SERVER
    assert error.message == "Failed to start location tracking"
    assert error.details == "TRACKING_FAILED"


def test_classify_error_details_include_code_and_status() -> None:
    error = classify_error(ServerError(code="DB_DOWN", message="x", details="pool exhausted", status_code=503))
    assert error.details == "DB_DOWN (HTTP 503): pool exhausted"
