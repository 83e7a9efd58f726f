"""
Redis Client Manager

Redis connection management and the counter operations used for worker identity assignment.
"""

import asyncio
from typing import Any, Dict, Optional
from urllib.parse import quote

import redis.asyncio as redis
from redis.asyncio import ConnectionPool
from redis.exceptions import RedisError

from smart_idworker.core.config import settings
from smart_idworker.core.error_codes import RedisErrorCode
from smart_idworker.core.exceptions import RedisException
from smart_idworker.core.logger import get_logger

logger = get_logger(__name__)

# Largest value a Redis counter can hold before INCR fails with an overflow error
REDIS_COUNTER_MAX = (1 << 63) - 1

# Reset the counter to 0 before incrementing when it sits at the signed 64-bit maximum
_INCR_WRAPPING_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    redis.call("set", KEYS[1], 0)
end
return redis.call("incr", KEYS[1])
"""


class RedisClient:
    """
    Redis client wrapper with connection pooling and counter operations.
    """

    def __init__(self) -> None:
        """Initialize Redis client with connection pool."""
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._lock = asyncio.Lock()

    async def _ensure_connection(self) -> redis.Redis:
        """
        Ensure Redis connection is established.

        Returns:
            redis.Redis: Redis client instance

        Raises:
            RedisException: If connection fails
        """
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is not None:
                return self._client  # type: ignore[unreachable]

            try:
                scheme = "rediss" if settings.redis__ssl else "redis"
                auth = (
                    f":{quote(settings.redis__password)}@"
                    if settings.redis__password
                    else ""
                )
                redis_url = (
                    f"{scheme}://{auth}{settings.redis__host}:"
                    f"{settings.redis__port}/{settings.redis__db}"
                )

                pool_kwargs: Dict[str, Any] = {
                    "encoding": "utf-8",
                    "decode_responses": True,
                    "retry_on_timeout": True,
                    "socket_connect_timeout": settings.redis__connect_timeout,
                    "socket_timeout": settings.redis__socket_timeout,
                }

                if settings.redis__ssl:
                    pool_kwargs["connection_class"] = redis.SSLConnection
                    pool_kwargs["ssl_check_hostname"] = False
                    pool_kwargs["ssl_cert_reqs"] = None

                self._pool = ConnectionPool.from_url(redis_url, **pool_kwargs)
                client = redis.Redis(connection_pool=self._pool)

                await client.ping()
                self._client = client
                logger.info("Redis connection established successfully")

                return client

            except Exception as e:
                logger.error("Failed to connect to Redis: %s", str(e))
                raise RedisException(
                    f"Redis connection failed: {str(e)}",
                    RedisErrorCode.CONNECTION_FAILED,
                    {"host": settings.redis__host, "port": settings.redis__port},
                ) from e

    async def close(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Redis connection closed")

    # Counter Operations
    async def incr(self, key: str) -> int:
        """
        Atomically increment a counter.

        Args:
            key: Redis key, created with value 0 if missing

        Returns:
            Counter value after the increment

        Raises:
            RedisException: If the key holds a non-integer or would overflow
        """
        client = await self._ensure_connection()
        try:
            return int(await client.incr(key))
        except RedisError as e:
            raise RedisException(
                f"Failed to increment counter {key}: {str(e)}",
                RedisErrorCode.OPERATION_FAILED,
                {"key": key},
            ) from e

    async def incr_wrapping(self, key: str) -> int:
        """
        Atomically increment a counter, wrapping to 1 instead of overflowing.

        Args:
            key: Redis key, created with value 0 if missing

        Returns:
            Counter value after the increment

        Raises:
            RedisException: If the key holds a non-integer
        """
        client = await self._ensure_connection()
        try:
            result = await client.eval(  # type: ignore[misc]
                _INCR_WRAPPING_SCRIPT, 1, key, str(REDIS_COUNTER_MAX)
            )
            return int(result)
        except RedisError as e:
            raise RedisException(
                f"Failed to increment counter {key}: {str(e)}",
                RedisErrorCode.OPERATION_FAILED,
                {"key": key},
            ) from e


class _RedisClientManager:
    """Redis client manager using singleton pattern."""

    def __init__(self) -> None:
        self._client: Optional[RedisClient] = None

    def get_client(self) -> RedisClient:
        """
        Get Redis client instance with lazy initialization.

        Note:
            The actual connection is established lazily when first used.
        """
        if self._client is None:
            self._client = RedisClient()
        return self._client

    async def close_client(self) -> None:
        """Close Redis client and cleanup resources."""
        if self._client:
            await self._client.close()
            self._client = None


_client_manager = _RedisClientManager()


def get_redis_client() -> RedisClient:
    """
    Get Redis client instance.

    Note:
        This function returns a client that may not be connected yet.
        The actual connection is established lazily when first used.
    """
    return _client_manager.get_client()


async def close_redis_client() -> None:
    """Close Redis client and cleanup resources."""
    await _client_manager.close_client()
