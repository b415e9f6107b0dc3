"""Redis storage adapter built on redis.asyncio."""

import logging
from collections.abc import Sequence

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from perfkeeper.core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

_UNAVAILABLE = (RedisConnectionError, RedisTimeoutError, OSError)


def _text(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RedisStore:
    """Redis implementation of KeyValueStorePort.

    Every call is a single Redis command. Connection and timeout failures
    are raised as StoreUnavailable; nothing is retried here.

    Args:
        client: An existing ``redis.asyncio.Redis`` client.
    """

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        """Create a store with a client configured from a Redis URL."""
        client = aioredis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=5.0,
            socket_connect_timeout=5.0,
            health_check_interval=30,
        )
        return cls(client)

    async def set(self, key: str, value: str | bytes, ttl: int) -> None:
        """SET key value EX ttl.

        Raises:
            ValueError: If ttl is below one second.
            StoreUnavailable: If Redis cannot be reached.
        """
        if ttl < 1:
            raise ValueError(f"ttl must be at least 1 second, got {ttl}")
        try:
            await self._client.set(key, value, ex=ttl)
        except _UNAVAILABLE as e:
            logger.error("Redis SET failed for %s: %s", key, e)
            raise StoreUnavailable(f"Redis SET failed: {e}") from e

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        """MGET over the keys, preserving positions."""
        if not keys:
            return []
        try:
            values = await self._client.mget(list(keys))
        except _UNAVAILABLE as e:
            logger.error("Redis MGET failed for %d keys: %s", len(keys), e)
            raise StoreUnavailable(f"Redis MGET failed: {e}") from e
        return [None if v is None else _text(v) for v in values]

    async def keys(self, pattern: str) -> list[str]:
        """KEYS pattern (blocks the server for the whole keyspace)."""
        try:
            found = await self._client.keys(pattern)
        except _UNAVAILABLE as e:
            logger.error("Redis KEYS failed for %s: %s", pattern, e)
            raise StoreUnavailable(f"Redis KEYS failed: {e}") from e
        return [_text(k) for k in found]

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        """SCAN cursor MATCH pattern COUNT count."""
        try:
            next_cursor, batch = await self._client.scan(
                cursor=cursor, match=match, count=count
            )
        except _UNAVAILABLE as e:
            logger.error("Redis SCAN failed for %s: %s", match, e)
            raise StoreUnavailable(f"Redis SCAN failed: {e}") from e
        return int(next_cursor), [_text(k) for k in batch]

    async def ping(self) -> bool:
        """Return True if the server answers PING."""
        try:
            return bool(await self._client.ping())
        except _UNAVAILABLE as e:
            raise StoreUnavailable(f"Redis PING failed: {e}") from e

    async def close(self) -> None:
        """Close the underlying client."""
        await self._client.aclose()
