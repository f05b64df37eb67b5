from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .events import Observable
from .exceptions import ApiError, NetworkError, UnauthorizedError
from .http_client import HttpClient, JsonPayload
from .models import QueuedRequest
from .request_queue import RequestQueue
from .session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class ReplayReport:
    attempted: int = 0
    succeeded: int = 0
    failed: list[QueuedRequest] = field(default_factory=list)


class RiderApiClient:
    """Single point of contact with the backend.

    Injects the bearer credential, tears the session down on any 401 and
    parks POST/PUT calls that fail for lack of connectivity in the durable
    queue so ``replay_queue`` can send them later.
    """

    def __init__(self, http: HttpClient, session_store: SessionStore, queue: RequestQueue) -> None:
        self.http = http
        self.session_store = session_store
        self.queue = queue
        self.unauthorized: Observable[UnauthorizedError] = Observable()
        self.http.register_unauthorized_handler(self._handle_unauthorized)

    @property
    def has_credential(self) -> bool:
        return self.http.auth_token is not None

    def set_auth_token(self, token: str) -> None:
        self.http.set_auth_token(token)

    def clear_auth_token(self) -> None:
        self.http.clear_auth_token()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> JsonPayload:
        return await self.http.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        *,
        queue_on_failure: bool = True,
    ) -> JsonPayload:
        return await self._mutate("POST", path, body, params, queue_on_failure)

    async def put(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        *,
        queue_on_failure: bool = True,
    ) -> JsonPayload:
        return await self._mutate("PUT", path, body, params, queue_on_failure)

    async def _mutate(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None,
        params: dict[str, Any] | None,
        queue_on_failure: bool,
    ) -> JsonPayload:
        try:
            return await self.http.request(method, path, json_body=body or {}, params=params)
        except NetworkError:
            if queue_on_failure:
                await self._park(QueuedRequest(method=method, url=path, body=body or {}, query_params=params))
            raise

    async def _park(self, request: QueuedRequest) -> None:
        try:
            await self.queue.enqueue(request)
        except Exception:
            # The caller still sees the NetworkError.
            logger.exception("request_queue_write_failed", extra={"method": request.method, "url": request.url})

    async def replay_queue(self) -> ReplayReport:
        report = ReplayReport()
        batch = await self.queue.drain()
        if not batch:
            return report
        logger.info("queue_replay_started", extra={"pending": len(batch)})
        for request in batch:
            report.attempted += 1
            try:
                await self.http.request(
                    request.method,
                    request.url,
                    json_body=request.body,
                    params=request.query_params,
                )
            except ApiError as exc:
                report.failed.append(request)
                logger.error(
                    "queue_replay_dropped",
                    extra={
                        "method": request.method,
                        "url": request.url,
                        "error_code": exc.code,
                        "status_code": exc.status_code,
                    },
                )
                continue
            report.succeeded += 1
        logger.info(
            "queue_replay_finished",
            extra={"attempted": report.attempted, "succeeded": report.succeeded, "dropped": len(report.failed)},
        )
        return report

    async def _handle_unauthorized(self, error: UnauthorizedError) -> None:
        self.http.clear_auth_token()
        try:
            await self.session_store.clear()
        except Exception:
            logger.exception("session_store_clear_failed")
        logger.warning("session_invalidated", extra={"error_code": error.code})
        self.unauthorized.publish(error)

    async def aclose(self) -> None:
        await self.http.aclose()
