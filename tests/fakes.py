from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from rider_client_sdk.api_client import RiderApiClient
from rider_client_sdk.app import RiderApp
from rider_client_sdk.config import ClientConfig
from rider_client_sdk.http_client import HttpClient
from rider_client_sdk.lifecycle import ManualLifecycleSource
from rider_client_sdk.location import PositionSample, SampleCallback, WatchOptions
from rider_client_sdk.request_queue import KeyValueStorage, MemoryStorage, RequestQueue
from rider_client_sdk.session_store import MemorySecretStore, SessionStore

API_PREFIX = "/api"
T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

# Roughly one meter of latitude in degrees.
METER = 1 / 111_195


def make_config(**overrides: Any) -> ClientConfig:
    values: dict[str, Any] = {
        "env_name": "test",
        "api_base_url": "https://api.test/api",
        "retry_backoff_seconds": 0,
    }
    values.update(overrides)
    return ClientConfig(**values)


def sample(seconds: float = 0, north_meters: float = 0) -> PositionSample:
    return PositionSample(
        latitude=52.0 + north_meters * METER,
        longitude=4.0,
        captured_at=T0 + timedelta(seconds=seconds),
    )


Route = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """Routes requests by (method, path) and records every call."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.calls: list[httpx.Request] = []
        self.offline = False

    def on(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        def _reply(request: httpx.Request) -> httpx.Response:
            if body is None:
                return httpx.Response(status)
            return httpx.Response(status, json=body)

        self.routes[(method.upper(), API_PREFIX + path)] = _reply

    def on_call(self, method: str, path: str, route: Route) -> None:
        self.routes[(method.upper(), API_PREFIX + path)] = route

    def unreachable(self, method: str, path: str) -> None:
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method.upper(), API_PREFIX + path)] = _fail

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.offline:
            raise httpx.ConnectError("offline", request=request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"code": "NOT_FOUND", "message": "No route"})
        return route(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [
            call
            for call in self.calls
            if call.method == method.upper() and call.url.path == API_PREFIX + path
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


class FakeSubscription:
    def __init__(self) -> None:
        self._active = True
        self.removed = False

    @property
    def active(self) -> bool:
        return self._active

    async def remove(self) -> None:
        self._active = False
        self.removed = True

    def kill(self) -> None:
        """Simulate the OS dropping the watch while the app was suspended."""
        self._active = False


class FakePositionSource:
    def __init__(self, permission: bool = True, fail_watch: bool = False) -> None:
        self.permission = permission
        self.fail_watch = fail_watch
        self.watches: list[tuple[FakeSubscription, SampleCallback, WatchOptions]] = []
        self.position = sample()

    @property
    def subscriptions(self) -> list[FakeSubscription]:
        return [watch[0] for watch in self.watches]

    @property
    def active_subscriptions(self) -> list[FakeSubscription]:
        return [sub for sub in self.subscriptions if sub.active]

    async def request_permission(self) -> bool:
        return self.permission

    async def watch_position(self, callback: SampleCallback, options: WatchOptions) -> FakeSubscription:
        if self.fail_watch:
            raise RuntimeError("provider unavailable")
        subscription = FakeSubscription()
        self.watches.append((subscription, callback, options))
        return subscription

    async def current_position(self) -> PositionSample:
        return self.position

    async def emit(self, position: PositionSample) -> None:
        for subscription, callback, _ in list(self.watches):
            if subscription.active:
                await callback(position)


def build_api(backend: FakeBackend, **config: Any) -> RiderApiClient:
    http = HttpClient(make_config(**config), transport=backend.transport())
    return RiderApiClient(http, SessionStore(MemorySecretStore()), RequestQueue(MemoryStorage()))


def rider_backend(status: str = "inactive", orders: list[dict[str, Any]] | None = None) -> FakeBackend:
    backend = FakeBackend()
    backend.on("GET", "/auth/profile", body={"id": "u1", "role": "rider", "riderId": "r1", "email": "ana@example.com"})
    backend.on(
        "POST",
        "/auth/login",
        body={"token": "tok-new", "user": {"id": "u1", "role": "rider", "riderId": "r1"}},
    )
    backend.on("GET", "/riders/r1", body={"id": "r1", "status": status})
    backend.on("GET", "/riders/r1/orders", body=orders or [])
    backend.on("PUT", "/riders/r1/availability", body={})
    backend.on("POST", "/riders/location", body={})
    return backend


def build_app(
    backend: FakeBackend,
    source: FakePositionSource | None = None,
    *,
    token: str | None = "tok",
    storage: KeyValueStorage | None = None,
) -> tuple[RiderApp, FakePositionSource, MemorySecretStore]:
    source = source or FakePositionSource()
    secrets = MemorySecretStore()
    if token:
        secrets.values["authToken"] = token
    app = RiderApp.create(
        source,
        make_config(),
        secret_store=secrets,
        storage=storage or MemoryStorage(),
        lifecycle=ManualLifecycleSource(),
        transport=backend.transport(),
    )
    return app, source, secrets
