"""Test doubles shared across test modules."""

from collections.abc import Sequence
from typing import Any

from perfkeeper.adapters.storage.in_memory import InMemoryKeyValueStore


class DuplicatingStore(InMemoryKeyValueStore):
    """In-memory store whose SCAN repeats the previous batch's keys.

    Mimics Redis returning the same key in more than one SCAN batch.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._previous: list[str] = []
        self.scan_calls = 0

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        self.scan_calls += 1
        next_cursor, batch = await super().scan(cursor, match, count)
        result = list(reversed(batch)) + self._previous
        self._previous = batch
        return next_cursor, result


class CountingStore(InMemoryKeyValueStore):
    """In-memory store that counts round trips per command."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.mget_calls = 0
        self.keys_calls = 0
        self.scan_calls = 0

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        self.mget_calls += 1
        return await super().mget(keys)

    async def keys(self, pattern: str) -> list[str]:
        self.keys_calls += 1
        return await super().keys(pattern)

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        self.scan_calls += 1
        return await super().scan(cursor, match, count)


class EndlessScanStore(InMemoryKeyValueStore):
    """Store whose SCAN cursor never signals completion."""

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        return cursor + 1, []
