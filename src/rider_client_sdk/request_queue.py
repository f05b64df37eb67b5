from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from .models import QueuedRequest

logger = logging.getLogger(__name__)

QUEUE_KEY = "offline_queue"

_queue_adapter = TypeAdapter(list[QueuedRequest])


class KeyValueStorage(Protocol):
    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


@dataclass
class MemoryStorage:
    values: dict[str, str] = field(default_factory=dict)

    async def get_item(self, key: str) -> str | None:
        return self.values.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.values[key] = value

    async def remove_item(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class JsonFileStorage:
    """One file per key under ``directory``; survives process restarts."""

    directory: Path

    def _path(self, key: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory / f"{key}.json"

    async def get_item(self, key: str) -> str | None:
        path = self._path(key)

        def _read() -> str | None:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

        return await asyncio.to_thread(_read)

    async def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(path.write_text, value, encoding="utf-8")

    async def remove_item(self, key: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)


class RequestQueue:
    """Durable FIFO of mutating calls that failed for lack of connectivity.

    The whole collection is read-modify-written on every change, so every
    access goes through one lock. ``drain`` empties storage before returning
    the batch: anything enqueued while that batch is replayed is kept for the
    next drain.
    """

    def __init__(self, storage: KeyValueStorage, key: str = QUEUE_KEY) -> None:
        self.storage = storage
        self.key = key
        self._lock = asyncio.Lock()

    async def _load(self) -> list[QueuedRequest]:
        raw = await self.storage.get_item(self.key)
        if not raw:
            return []
        try:
            return _queue_adapter.validate_json(raw)
        except PydanticValidationError:
            logger.error("request_queue_corrupt", extra={"key": self.key})
            return []

    async def _save(self, requests: list[QueuedRequest]) -> None:
        await self.storage.set_item(self.key, _queue_adapter.dump_json(requests).decode())

    async def enqueue(self, request: QueuedRequest) -> None:
        async with self._lock:
            queue = await self._load()
            queue.append(request)
            await self._save(queue)
        logger.info(
            "request_queued",
            extra={"method": request.method, "url": request.url, "pending": len(queue)},
        )

    async def pending(self) -> list[QueuedRequest]:
        async with self._lock:
            return await self._load()

    async def drain(self) -> list[QueuedRequest]:
        async with self._lock:
            queue = await self._load()
            if queue:
                await self.storage.remove_item(self.key)
            return queue
