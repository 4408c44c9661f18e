"""
Key-value blob store.

Values are opaque strings (JSON documents in practice) stored under a
small set of well known keys. Callers always read and write whole values;
there are no partial updates.

Backends:
- Memory (tests, single process)
- File system (one JSON file per key)
- Redis
"""
from pathlib import Path
from typing import Dict, Optional, Protocol

import redis.asyncio as redis

from miniapp.config import Settings
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PersistenceError(Exception):
    """Raised when a backend cannot complete a read or write"""


# ============================================================================
# STORE INTERFACE
# ============================================================================

class KeyValueStore(Protocol):
    """Interface that all store backends implement"""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def close(self) -> None:
        ...


# ============================================================================
# MEMORY BACKEND
# ============================================================================

class MemoryBackend:

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        pass


# ============================================================================
# FILE SYSTEM BACKEND
# ============================================================================

class FileSystemBackend:
    """
    File-based backend.

    Structure:
        storage_path/
            {key}.json
    """

    def __init__(self, storage_path: str = "./data"):
        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        logger.info("store.file.initialized", extra={"path": str(self.storage_path)})

    def _get_file_path(self, key: str) -> Path:
        return self.storage_path / f"{key}.json"

    async def get(self, key: str) -> Optional[str]:
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None
        try:
            return file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to read '{key}': {e}") from e

    async def set(self, key: str, value: str) -> None:
        """Write through a temp file so readers never see a partial value"""
        file_path = self._get_file_path(key)
        temp_path = self.storage_path / f"{key}.json.tmp"
        try:
            temp_path.write_text(value, encoding="utf-8")
            temp_path.replace(file_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise PersistenceError(f"Failed to write '{key}': {e}") from e
        logger.debug("store.file.saved", extra={"key": key, "bytes": len(value)})

    async def delete(self, key: str) -> None:
        file_path = self._get_file_path(key)
        if file_path.exists():
            file_path.unlink()

    async def close(self) -> None:
        pass


# ============================================================================
# REDIS BACKEND
# ============================================================================

class RedisBackend:

    def __init__(
        self,
        url: str,
        key_prefix: str = "miniapp:",
        socket_timeout: int = 5,
        client: Optional[redis.Redis] = None,
    ):
        self.key_prefix = key_prefix
        self.client = client or redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=socket_timeout,
        )

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(self._key(key))
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to read '{key}': {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(self._key(key), value)
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to write '{key}': {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(self._key(key))
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to delete '{key}': {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("store.redis.closed")


def create_store(settings: Settings) -> KeyValueStore:
    backend = settings.storage_backend
    if backend == "file":
        store = FileSystemBackend(settings.storage_path)
    elif backend == "redis":
        store = RedisBackend(
            settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            socket_timeout=settings.redis_socket_timeout,
        )
    else:
        store = MemoryBackend()
    logger.info("✅ store.created", extra={"backend": backend})
    return store
