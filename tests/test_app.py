from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pytest

from fakes import FakeBackend, build_app, rider_backend
from rider_client_sdk import cli
from rider_client_sdk.app import RiderApp
from rider_client_sdk.auth import AuthState
from rider_client_sdk.exceptions import NetworkError
from rider_client_sdk.lifecycle import AppState, ManualLifecycleSource
from rider_client_sdk.log import PACKAGE_LOGGER, JsonLineFormatter, configure_logging
from rider_client_sdk.models import QueuedRequest
from rider_client_sdk.request_queue import JsonFileStorage, MemoryStorage, RequestQueue
from rider_client_sdk.session_store import MemorySecretStore


def _queued_storage() -> MemoryStorage:
    storage = MemoryStorage()
    asyncio.run(
        RequestQueue(storage).enqueue(
            QueuedRequest(method="POST", url="/riders/location", body={"latitude": 1.0, "longitude": 2.0})
        )
    )
    return storage


def test_start_replays_queue_for_authenticated_rider() -> None:
    backend = rider_backend()
    app, _, _ = build_app(backend, storage=_queued_storage())

    assert asyncio.run(app.start()) is AuthState.AUTHENTICATED
    replayed = backend.calls_to("POST", "/riders/location")
    assert [FakeBackend.body(call) for call in replayed] == [{"latitude": 1.0, "longitude": 2.0}]


def test_anonymous_start_keeps_queue() -> None:
    backend = rider_backend()
    storage = _queued_storage()
    app, _, _ = build_app(backend, token=None, storage=storage)

    assert asyncio.run(app.start()) is AuthState.ANONYMOUS
    assert backend.calls == []
    assert asyncio.run(RequestQueue(storage).pending())


def test_login_activates_session() -> None:
    backend = rider_backend(status="active", orders=[{"id": 1, "status": "assigned"}])
    app, source, _ = build_app(backend, token=None, storage=_queued_storage())

    async def scenario() -> bool:
        await app.start()
        return await app.login("ana@example.com", "secret")

    assert asyncio.run(scenario()) is True
    assert len(backend.calls_to("POST", "/riders/location")) == 1
    assert app.availability.online is True
    assert len(source.active_subscriptions) == 1
    assert [order.id for order in app.deliveries.active] == ["1"]


def test_foreground_replays_queue() -> None:
    backend = rider_backend()
    storage = MemoryStorage()
    app, _, _ = build_app(backend, storage=storage)

    async def scenario() -> None:
        await app.start()
        await app.api.queue.enqueue(QueuedRequest(method="POST", url="/riders/location", body={"latitude": 3.0}))
        await app.lifecycle.emit(AppState.ACTIVE)
        assert await app.api.queue.pending() == []

    asyncio.run(scenario())
    assert len(backend.calls_to("POST", "/riders/location")) == 1


def test_logout_marks_rider_offline_first() -> None:
    backend = rider_backend()
    app, source, secrets = build_app(backend)

    async def scenario() -> None:
        await app.start()
        await app.availability.mark_online()
        await app.logout()

    asyncio.run(scenario())
    bodies = [FakeBackend.body(call) for call in backend.calls_to("PUT", "/riders/r1/availability")]
    assert bodies == [{"isAvailable": True}, {"isAvailable": False}]
    assert app.auth.state is AuthState.ANONYMOUS
    assert source.active_subscriptions == []
    assert secrets.values == {}


def test_json_formatter_redacts_credentials() -> None:
    record = logging.makeLogRecord(
        {
            "name": "rider_client_sdk.auth",
            "levelname": "INFO",
            "msg": "login_success",
            "user_id": "u1",
            "token": "secret-token",
        }
    )
    payload = json.loads(JsonLineFormatter().format(record))
    assert payload["event"] == "login_success"
    assert payload["logger"] == "rider_client_sdk.auth"
    assert payload["user_id"] == "u1"
    assert payload["token"] == "***"


def test_configure_logging_is_idempotent() -> None:
    logger = configure_logging("DEBUG")
    configure_logging("INFO")
    handlers = [handler for handler in logger.handlers if getattr(handler, "_rider_json", False)]
    try:
        assert logger.name == PACKAGE_LOGGER
        assert len(handlers) == 1
        assert logger.level == logging.INFO
    finally:
        for handler in handlers:
            logger.removeHandler(handler)


@pytest.fixture
def cli_backend(monkeypatch: pytest.MonkeyPatch) -> tuple[FakeBackend, MemorySecretStore]:
    backend = rider_backend(orders=[{"id": 5, "status": "assigned"}])
    secrets = MemorySecretStore()

    class _AppFactory:
        @staticmethod
        def create(position_source, config):
            return RiderApp.create(
                position_source,
                config,
                secret_store=secrets,
                storage=MemoryStorage(),
                lifecycle=ManualLifecycleSource(),
                transport=backend.transport(),
            )

    monkeypatch.setenv("RIDER_API_BASE_URL", "https://api.test/api")
    monkeypatch.setattr(cli, "RiderApp", _AppFactory)
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    return backend, secrets


def test_cli_login_then_orders(cli_backend, capsys: pytest.CaptureFixture[str]) -> None:
    _, secrets = cli_backend

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["login", "--email", "ana@example.com", "--password", "secret"])
    assert exc_info.value.code == 0
    assert json.loads(capsys.readouterr().out)["ok"] is True
    assert secrets.values == {"authToken": "tok-new"}

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["orders"])
    assert exc_info.value.code == 0
    output = json.loads(capsys.readouterr().out)
    assert [order["id"] for order in output["active"]] == ["5"]
    assert output["history"] == []


def test_cli_whoami_without_session(cli_backend, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["whoami"])
    assert exc_info.value.code == 1
    assert json.loads(capsys.readouterr().out)["state"] == "anonymous"


def test_cli_login_failure_reports_kind(cli_backend, capsys: pytest.CaptureFixture[str]) -> None:
    backend, _ = cli_backend
    backend.on("POST", "/auth/login", status=401, body={"message": "Unauthorized"})

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["login", "--email", "ana@example.com", "--password", "wrong"])
    assert exc_info.value.code == 1
    assert json.loads(capsys.readouterr().out)["kind"] == "invalid_credentials"


def test_queued_position_is_replayed_once_after_restart(tmp_path: Path) -> None:
    backend = rider_backend()
    backend.unreachable("POST", "/riders/location")
    first, _, _ = build_app(backend, storage=JsonFileStorage(tmp_path))

    async def before_restart() -> None:
        await first.start()
        with pytest.raises(NetworkError):
            await first.api.post("/riders/location", {"latitude": 1.0, "longitude": 1.0})
        assert len(await first.api.queue.pending()) == 1
        await first.aclose()

    asyncio.run(before_restart())
    backend.on("POST", "/riders/location", status=500, body={"message": "down"})
    second, _, _ = build_app(backend, storage=JsonFileStorage(tmp_path))

    async def after_restart() -> None:
        await second.start()
        assert await second.api.queue.pending() == []
        await second.aclose()

    asyncio.run(after_restart())
    assert len(backend.calls_to("POST", "/riders/location")) == 2
