"""Ephemeral key-value stores holding rate-limit windows.

Both backends expose the same get/put-with-TTL contract. Neither offers an
atomic increment: callers do an independent read followed by a write.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract JSON key-value store with per-key time-to-live."""

    @abstractmethod
    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """Read and decode the value stored under ``key``.

        Returns:
            Decoded JSON object, or None if the key is missing or expired
        """
        pass

    @abstractmethod
    async def put_json(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        """Store ``value`` under ``key``, expiring after ``ttl_seconds``."""
        pass

    async def close(self) -> None:
        """Release any underlying connection."""
        return None


class InMemoryKVStore(KeyValueStore):
    """Process-local store, used for single-process deployments and tests.

    Expired keys are dropped when read, and by a sweep over the whole map at
    most once every ``sweep_interval`` seconds during writes.
    """

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 60.0):
        self._clock = clock
        self._data: Dict[str, Tuple[str, float]] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep_at = clock() + sweep_interval

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        item = self._data.get(key)
        if item is None:
            return None

        raw, expires_at = item
        if self._clock() >= expires_at:
            del self._data[key]
            return None

        return json.loads(raw)

    async def put_json(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        now = self._clock()
        if now >= self._next_sweep_at:
            self._sweep(now)
            self._next_sweep_at = now + self._sweep_interval
        self._data[key] = (json.dumps(value), now + ttl_seconds)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._data.items() if now >= expires_at]
        for key in expired:
            del self._data[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired keys")

    def __len__(self) -> int:
        return len(self._data)


class RedisKVStore(KeyValueStore):
    """Redis-backed store shared across worker processes."""

    def __init__(self, url: str = "redis://localhost:6379/0", client: Any = None):
        """Initialize Redis store.

        Args:
            url: Redis connection URL
            client: Optional pre-built ``redis.asyncio`` client
        """
        if client is None:
            from redis import asyncio as aioredis

            client = aioredis.from_url(url, decode_responses=True)
        self.client = client
        self.url = url

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def put_json(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        await self.client.set(key, json.dumps(value), ex=ttl_seconds)

    async def close(self) -> None:
        await self.client.aclose()


def create_kv_store(backend: str, redis_url: Optional[str] = None) -> KeyValueStore:
    """Build the configured store backend.

    Args:
        backend: "memory" or "redis"
        redis_url: Connection URL when backend is "redis"

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = (backend or "memory").lower()

    if backend == "memory":
        logger.info("Using in-memory rate limit store")
        return InMemoryKVStore()

    if backend == "redis":
        url = redis_url or "redis://localhost:6379/0"
        logger.info(f"Using Redis rate limit store at {url}")
        return RedisKVStore(url)

    raise ValueError(f"Unknown rate limit backend: {backend!r} (expected 'memory' or 'redis')")
