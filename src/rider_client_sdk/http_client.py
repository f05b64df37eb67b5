from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import NetworkError, ServerError, UnauthorizedError

logger = logging.getLogger(__name__)

UnauthorizedHandler = Callable[[UnauthorizedError], Awaitable[None]]
JsonPayload = dict[str, Any] | list[Any] | None


@dataclass
class LastOperation:
    method: str
    path: str
    duration_ms: int
    result: str
    status_code: int | None


class HttpClient:
    def __init__(
        self,
        config: ClientConfig,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.api_base_url.rstrip("/") + "/",
            timeout=config.timeout_seconds,
            verify=config.verify_ssl,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        self._token: str | None = None
        self._unauthorized_handlers: list[UnauthorizedHandler] = []
        self.last_operation: LastOperation | None = None

    @property
    def auth_token(self) -> str | None:
        return self._token

    def set_auth_token(self, token: str | None) -> None:
        if token:
            self._token = token

    def clear_auth_token(self) -> None:
        self._token = None

    def register_unauthorized_handler(self, handler: UnauthorizedHandler) -> Callable[[], None]:
        self._unauthorized_handlers.append(handler)

        def _unregister() -> None:
            if handler in self._unauthorized_handlers:
                self._unauthorized_handlers.remove(handler)

        return _unregister

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> JsonPayload:
        normalized_method = method.upper()
        url = path.lstrip("/")
        request_headers = dict(headers or {})
        if self._token:
            request_headers["Authorization"] = f"Bearer {self._token}"

        can_retry = normalized_method in {"GET", "HEAD"}
        attempts = self.config.retries + 1 if can_retry else 1
        started = time.monotonic()
        response: httpx.Response | None = None
        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    normalized_method,
                    url,
                    json=json_body,
                    params=params,
                    headers=request_headers,
                )
                break
            except httpx.HTTPError as exc:
                if attempt >= attempts - 1:
                    self._record(normalized_method, path, started, "network_error", None)
                    logger.warning(
                        "http_network_error",
                        extra={"method": normalized_method, "path": path, "error_type": type(exc).__name__},
                    )
                    raise NetworkError(
                        code="NETWORK_ERROR",
                        message="Network Error",
                        details={"type": type(exc).__name__, "reason": str(exc)},
                        status_code=0,
                    ) from exc
                await asyncio.sleep(self.config.retry_backoff_seconds * (2**attempt))

        if response is None:
            raise RuntimeError("HTTP request finished without a response")
        if response.is_success:
            self._record(normalized_method, path, started, "success", response.status_code)
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise ServerError(
                    code="MALFORMED_RESPONSE",
                    message="Response body is not valid JSON",
                    details=response.text[:200],
                    status_code=response.status_code,
                ) from exc

        self._record(normalized_method, path, started, "error", response.status_code)
        error = map_error(response.status_code, _safe_payload(response))
        if isinstance(error, UnauthorizedError):
            await self._notify_unauthorized(error)
        raise error

    async def _notify_unauthorized(self, error: UnauthorizedError) -> None:
        for handler in list(self._unauthorized_handlers):
            try:
                await handler(error)
            except Exception:
                logger.exception("unauthorized_handler_failed")

    def _record(self, method: str, path: str, started: float, result: str, status_code: int | None) -> None:
        self.last_operation = LastOperation(
            method=method,
            path=path,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            status_code=status_code,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def _safe_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {"message": response.text or response.reason_phrase}
    if isinstance(payload, dict):
        return payload
    return {"details": payload}
