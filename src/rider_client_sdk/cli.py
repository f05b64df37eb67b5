from __future__ import annotations

import argparse
import asyncio
import json
from typing import Awaitable, Callable

from .app import RiderApp
from .auth import AuthState
from .config import load_config
from .exceptions import ApiError, LocationPermissionError
from .location import PositionSample, PositionSubscription, SampleCallback, WatchOptions
from .log import configure_logging


class _NoPositionSource:
    """The CLI has no device location; tracking reports a permission error."""

    async def request_permission(self) -> bool:
        return False

    async def watch_position(self, callback: SampleCallback, options: WatchOptions) -> PositionSubscription:
        raise LocationPermissionError()

    async def current_position(self) -> PositionSample:
        raise LocationPermissionError()


def _print(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def cmd_login(app: RiderApp, args: argparse.Namespace) -> int:
    if not await app.login(args.email, args.password):
        error = app.auth.last_error
        _print({"ok": False, "kind": error.kind.value if error else None, "message": error.message if error else None})
        return 1
    user = app.auth.user
    _print({"ok": True, "user": user.model_dump() if user else None})
    return 0


async def cmd_logout(app: RiderApp, args: argparse.Namespace) -> int:
    await app.logout()
    _print({"ok": True})
    return 0


async def cmd_whoami(app: RiderApp, args: argparse.Namespace) -> int:
    state = await app.start()
    user = app.auth.user
    _print({"state": state.value, "user": user.model_dump() if user else None})
    return 0 if state is AuthState.AUTHENTICATED else 1


async def cmd_orders(app: RiderApp, args: argparse.Namespace) -> int:
    if await app.start() is not AuthState.AUTHENTICATED:
        _print({"ok": False, "message": "Not logged in"})
        return 1
    snapshot = app.deliveries.deliveries
    if snapshot.error:
        _print({"ok": False, "message": snapshot.error.message})
        return 1
    _print(
        {
            "active": [order.model_dump(mode="json") for order in snapshot.active],
            "history": [order.model_dump(mode="json") for order in snapshot.history],
        }
    )
    return 0


async def cmd_replay_queue(app: RiderApp, args: argparse.Namespace) -> int:
    await app.auth.bootstrap()
    report = await app.replay_queue()
    _print({"attempted": report.attempted, "succeeded": report.succeeded, "dropped": len(report.failed)})
    return 0


Command = Callable[[RiderApp, argparse.Namespace], Awaitable[int]]


async def _run(command: Command, args: argparse.Namespace) -> int:
    app = RiderApp.create(_NoPositionSource(), load_config(args.env_file))
    try:
        return await command(app, args)
    finally:
        await app.aclose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Rider client smoke CLI")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--log-level", default="WARNING")
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", required=True)
    login_parser.set_defaults(func=cmd_login)

    subparsers.add_parser("logout").set_defaults(func=cmd_logout)
    subparsers.add_parser("whoami").set_defaults(func=cmd_whoami)
    subparsers.add_parser("orders").set_defaults(func=cmd_orders)
    subparsers.add_parser("replay-queue").set_defaults(func=cmd_replay_queue)

    args = parser.parse_args(argv)
    configure_logging(args.log_level.upper())
    try:
        code = asyncio.run(_run(args.func, args))
    except ApiError as exc:
        _print({"error": exc.code, "message": exc.message})
        raise SystemExit(1) from exc
    raise SystemExit(code)


if __name__ == "__main__":
    main()
