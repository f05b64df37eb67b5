from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"


class SecretStore(Protocol):
    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def delete_item(self, key: str) -> None: ...


@dataclass
class MemorySecretStore:
    values: dict[str, str] = field(default_factory=dict)

    async def get_item(self, key: str) -> str | None:
        return self.values.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.values[key] = value

    async def delete_item(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class FileSecretStore:
    """Owner-only JSON file; stands in for the platform keystore on desktops."""

    directory: Path
    filename: str = "secrets.json"

    def _path(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory / self.filename

    def _read(self) -> dict[str, str]:
        path = self._path()
        if not path.exists():
            return {}
        data = json.loads(path.read_text())
        if not isinstance(data, dict):
            raise ValueError("secret store file is not a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        path = self._path()
        path.write_text(json.dumps(data, indent=2))
        try:
            path.chmod(0o600)
        except OSError:
            pass

    async def get_item(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read)
        value = data.get(key)
        return str(value) if value is not None else None

    async def set_item(self, key: str, value: str) -> None:
        def _update() -> None:
            data = self._read()
            data[key] = value
            self._write(data)

        await asyncio.to_thread(_update)

    async def delete_item(self, key: str) -> None:
        def _update() -> None:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

        await asyncio.to_thread(_update)


@dataclass
class SessionStore:
    secret_store: SecretStore
    key: str = AUTH_TOKEN_KEY

    async def get(self) -> str | None:
        try:
            return await self.secret_store.get_item(self.key)
        except Exception:
            # An unreadable credential forces a fresh login.
            logger.warning("session_store_read_failed", exc_info=True)
            return None

    async def set(self, credential: str) -> None:
        await self.secret_store.set_item(self.key, credential)

    async def clear(self) -> None:
        await self.secret_store.delete_item(self.key)
