"""
Stores Package

Shared counter backends for worker identity assignment.

This package follows fast-failing import strategy - missing dependencies will
cause immediate import errors rather than graceful degradation.
"""

from .counter_store import (
    AtomicCounterStore,
    InMemoryAtomicCounterStore,
    RedisAtomicCounterStore,
)
from .redis_client import RedisClient, close_redis_client, get_redis_client

__all__ = [
    # Counters
    "AtomicCounterStore",
    "InMemoryAtomicCounterStore",
    "RedisAtomicCounterStore",
    # Redis
    "RedisClient",
    "get_redis_client",
    "close_redis_client",
]
