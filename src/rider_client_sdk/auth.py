from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .api_client import RiderApiClient
from .clients.auth import AuthClient
from .events import Observable
from .exceptions import ApiError, RoleMismatchError, UnauthorizedError
from .models import RIDER_ROLE, UserResponse
from .session_store import SessionStore
from .ui_errors import UserFacingError, classify_error

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class SessionSnapshot:
    state: AuthState
    user: UserResponse | None = None
    error: UserFacingError | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED and self.user is not None


def _role_mismatch(user: UserResponse) -> RoleMismatchError:
    return RoleMismatchError(
        code="ROLE_MISMATCH",
        message="Access denied. This app is for riders only.",
        details={"role": user.role},
        status_code=403,
    )


class AuthSessionManager:
    """Owns the rider identity and the credential lifecycle.

    ``login`` and ``logout`` never raise; failures are kept in ``last_error``
    as one classified, user-presentable message.
    """

    def __init__(self, api: RiderApiClient, session_store: SessionStore) -> None:
        self.api = api
        self.session_store = session_store
        self.auth_client = AuthClient(api)
        self.changes: Observable[SessionSnapshot] = Observable()
        self._state = AuthState.UNINITIALIZED
        self._user: UserResponse | None = None
        self._error: UserFacingError | None = None
        self.api.unauthorized.subscribe(self._on_unauthorized)

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def user(self) -> UserResponse | None:
        return self._user

    @property
    def last_error(self) -> UserFacingError | None:
        return self._error

    @property
    def is_authenticated(self) -> bool:
        return self._state is AuthState.AUTHENTICATED and self._user is not None

    @property
    def rider_id(self) -> str | None:
        if not self.is_authenticated or self._user is None:
            return None
        return self._user.rider_id

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(state=self._state, user=self._user, error=self._error)

    async def bootstrap(self) -> AuthState:
        self._transition(AuthState.BOOTSTRAPPING)
        token = await self.session_store.get()
        if not token:
            self._become_anonymous()
            return self._state

        self.api.set_auth_token(token)
        try:
            user = await self.auth_client.profile()
            if not user.is_rider:
                raise _role_mismatch(user)
        except ApiError as exc:
            logger.warning("bootstrap_failed", extra={"error_code": exc.code, "status_code": exc.status_code})
            self._error = classify_error(exc)
            await self._discard_session()
            return self._state

        self._user = user
        self._error = None
        self._transition(AuthState.AUTHENTICATED)
        logger.info("bootstrap_authenticated", extra={"user_id": user.id})
        return self._state

    async def login(self, email: str, password: str) -> bool:
        self._error = None
        logger.info("login_attempt")
        try:
            result = await self.auth_client.authenticate(email, password)
            if not result.user.is_rider:
                raise _role_mismatch(result.user)
            await self.session_store.set(result.token)
        except Exception as exc:
            self._error = classify_error(exc, fallback=_server_message(exc))
            logger.warning("login_failure", extra={"error_kind": self._error.kind.value})
            self._publish()
            return False

        self.api.set_auth_token(result.token)
        self._user = result.user
        self._transition(AuthState.AUTHENTICATED)
        logger.info("login_success", extra={"user_id": result.user.id})
        return True

    async def logout(self) -> None:
        logger.info("logout")
        await self._discard_session()

    def update_user(self, **fields: Any) -> UserResponse | None:
        if self._user is None:
            return None
        merged = {**self._user.model_dump(by_alias=True), **fields}
        updated = UserResponse.model_validate(merged)
        if (updated.role or "").lower() != RIDER_ROLE:
            logger.warning("update_user_role_rejected", extra={"role": updated.role})
            return self._user
        self._user = updated
        self._publish()
        return self._user

    async def _discard_session(self) -> None:
        try:
            await self.session_store.clear()
        except Exception:
            logger.exception("session_store_clear_failed")
        self.api.clear_auth_token()
        self._become_anonymous()

    def _become_anonymous(self) -> None:
        self._user = None
        self._transition(AuthState.ANONYMOUS)

    def _on_unauthorized(self, error: UnauthorizedError) -> None:
        if self._state is AuthState.ANONYMOUS:
            return
        # The API client has already cleared the stored credential.
        if self._state is AuthState.AUTHENTICATED:
            self._error = classify_error(error)
        self._become_anonymous()

    def _transition(self, state: AuthState) -> None:
        self._state = state
        self._publish()

    def _publish(self) -> None:
        self.changes.publish(self.snapshot())


def _server_message(exc: Exception) -> str | None:
    if isinstance(exc, ApiError) and exc.message and exc.message != "Request failed":
        return exc.message
    return None
