"""Port interface for the key-value store.

The core depends only on this protocol, not on a concrete client.
Examples: RedisStore, InMemoryKeyValueStore.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorePort(Protocol):
    """Port for the key-value operations perfkeeper needs.

    Every method is a coroutine; each call is a store round trip.
    """

    async def set(self, key: str, value: str | bytes, ttl: int) -> None:
        """Store a value that expires after ``ttl`` seconds."""
        ...

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        """Fetch values for keys, positionally aligned; missing keys yield None."""
        ...

    async def keys(self, pattern: str) -> list[str]:
        """Return every key matching a glob pattern in one blocking call."""
        ...

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        """Return the next cursor and a batch of keys matching ``match``.

        A returned cursor of 0 signals the scan is complete. Batches may
        repeat keys and carry no ordering guarantee.
        """
        ...
