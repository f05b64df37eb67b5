from __future__ import annotations

from ..exceptions import (
    ApiError,
    InvalidCredentialsError,
    NetworkError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from ..models import LoginResult, UserResponse
from .base import BaseClient, parse_model


class AuthClient(BaseClient):
    async def authenticate(self, email: str, password: str) -> LoginResult:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError(code="VALIDATION_ERROR", message="Email and password are required")
        try:
            data = await self.api.post(
                "/auth/login",
                {"email": email, "password": password},
                queue_on_failure=False,
            )
        except UnauthorizedError as exc:
            raise InvalidCredentialsError(
                code="INVALID_CREDENTIALS",
                message="Invalid email or password",
                details=exc.details,
                status_code=exc.status_code,
                raw_payload=exc.raw_payload,
            ) from exc
        except (NetworkError, ServerError):
            raise
        except ApiError as exc:
            raise ServerError(
                code=exc.code,
                message=exc.message,
                details=exc.details,
                status_code=exc.status_code,
                raw_payload=exc.raw_payload,
            ) from exc
        return parse_model(LoginResult, data, "login")

    async def profile(self) -> UserResponse:
        data = await self.api.get("/auth/profile")
        return parse_model(UserResponse, data, "profile")
