"""
Atomic Counter Stores

Shared counters that hand out worker and datacenter ids to IdWorker instances.
Any backend offering an atomic increment can satisfy AtomicCounterStore.
"""

import asyncio
from typing import Dict, Optional, Protocol, runtime_checkable

from smart_idworker.core.logger import get_logger
from smart_idworker.stores.redis_client import RedisClient, get_redis_client

logger = get_logger(__name__)


@runtime_checkable
class AtomicCounterStore(Protocol):
    """Capability to atomically increment a named counter."""

    async def increment_and_get(self, key: str) -> int:
        """Increment ``key`` by one and return the new value."""
        ...


class InMemoryAtomicCounterStore:
    """
    Process-local counters.

    Only unique within a single process; use for tests and single-node deployments.
    """

    def __init__(self, initial: Optional[Dict[str, int]] = None) -> None:
        self._counters: Dict[str, int] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def increment_and_get(self, key: str) -> int:
        async with self._lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value

    def get(self, key: str) -> int:
        return self._counters.get(key, 0)


class RedisAtomicCounterStore:
    """
    Counters kept in Redis, shared by every process pointing at the same database.

    A counter at the signed 64-bit maximum wraps around instead of failing.
    """

    def __init__(self, client: Optional[RedisClient] = None) -> None:
        self._client = client or get_redis_client()

    async def increment_and_get(self, key: str) -> int:
        value = await self._client.incr_wrapping(key)
        logger.debug("Counter %s incremented to %d", key, value)
        return value
