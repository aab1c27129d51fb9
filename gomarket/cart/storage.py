"""
Durable key-value storage backends for the cart record.

Every backend implements the same two async calls:
- get(key) -> Optional[str]
- set(key, value) -> None

The backend is picked with CART_STORAGE_BACKEND (memory, file, redis).
"""
import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

from gomarket import config
from gomarket.errors import ERROR_UNKNOWN_BACKEND
from gomarket.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class KeyValueStorage(Protocol):
    """Opaque async key-value medium."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    """In-process storage for tests and local development."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._store: Dict[str, str] = dict(initial or {})
        self.writes = 0

    async def get(self, key: str) -> Optional[str]:
        return self._store.get(key)

    async def set(self, key: str, value: str) -> None:
        self._store[key] = value
        self.writes += 1


class FileStorage:
    """
    On-device storage: one JSON object file mapping keys to strings.

    Disk access runs in a worker thread. Writes replace the file atomically
    so a crash mid-write never leaves a truncated record behind.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write_value(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except ValueError:
            # json.JSONDecodeError is a ValueError; start over rather than keep a broken file
            logger.warning(f"Replacing unreadable storage file {self.path}")
            data = {}
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".cart-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(data, tmp)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read_all)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write_value, key, value)


class RedisStorage:
    """Upstash Redis storage. No TTL: the cart outlives sessions."""

    def __init__(self, redis=None):
        self._redis = redis

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            from gomarket.db import get_redis
            self._redis = get_redis()
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        value = await self.redis.get(key)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(key, value)


def get_storage(backend: Optional[str] = None) -> KeyValueStorage:
    """Build the storage backend selected by configuration."""
    name = (backend or config.CART_STORAGE_BACKEND).strip().lower()

    if name == "memory":
        return MemoryStorage()
    if name == "file":
        return FileStorage(config.CART_STORAGE_PATH)
    if name == "redis":
        return RedisStorage()

    raise ValueError(f"{ERROR_UNKNOWN_BACKEND}: {name!r} (expected one of {', '.join(config.STORAGE_BACKENDS)})")
