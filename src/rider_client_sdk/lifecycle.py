from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Protocol

LifecycleListener = Callable[["AppState"], Awaitable[None]]


class AppState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BACKGROUND = "background"


class LifecycleEventSource(Protocol):
    def subscribe(self, listener: LifecycleListener) -> Callable[[], None]: ...


class ManualLifecycleSource:
    """Lifecycle source driven explicitly by the host shell or by tests."""

    def __init__(self, initial: AppState = AppState.ACTIVE) -> None:
        self.state = initial
        self._listeners: list[LifecycleListener] = []

    def subscribe(self, listener: LifecycleListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def emit(self, state: AppState) -> None:
        self.state = state
        await asyncio.gather(*(listener(state) for listener in list(self._listeners)))
