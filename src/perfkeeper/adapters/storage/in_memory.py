"""In-memory key-value store adapter."""

import functools
import re
import time
from collections.abc import Callable, Sequence


def _bracket(pattern: str, start: int) -> tuple[int, str] | None:
    """Translate a ``[...]`` class opened just before ``start``.

    Returns the index of the closing bracket and the regex class, or None
    when the bracket is never closed.
    """
    i, n = start, len(pattern)
    negate = i < n and pattern[i] == "^"
    if negate:
        i += 1
    items: list[str] = []
    while i < n and pattern[i] != "]":
        c = pattern[i]
        if c == "\\" and i + 1 < n:
            i += 1
            c = pattern[i]
        elif i + 2 < n and pattern[i + 1] == "-" and pattern[i + 2] != "]":
            lo, hi = sorted((c, pattern[i + 2]))
            items.append(f"{re.escape(lo)}-{re.escape(hi)}")
            i += 3
            continue
        items.append(re.escape(c))
        i += 1
    if i >= n:
        return None
    if not items:
        return i, "." if negate else "(?!)"
    return i, f"[{'^' if negate else ''}{''.join(items)}]"


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\" and i + 1 < n:
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if c == "*":
            out.append(".*")
        elif c == "?":
            out.append(".")
        elif c == "[" and (found := _bracket(pattern, i + 1)) is not None:
            i, cls = found
            out.append(cls)
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out), re.DOTALL)


def glob_match(pattern: str, key: str) -> bool:
    """Match a key against a Redis MATCH pattern.

    Supports ``*``, ``?``, ``[...]`` classes with ``^`` and ranges, and
    backslash escapes, which ``fnmatch`` does not.
    """
    return _compile(pattern).fullmatch(key) is not None


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStorePort.

    Stores values in a dict with per-key expiry. Suitable for testing and
    single-process deployments where persistence is not required.

    Args:
        clock: Returns the current Unix time; injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str | bytes, float]] = {}

    def _live_keys(self) -> list[str]:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._data.items() if expires_at <= now]
        for key in expired:
            del self._data[key]
        return list(self._data)

    async def set(self, key: str, value: str | bytes, ttl: int) -> None:
        """Store a value that expires after ``ttl`` seconds.

        Raises:
            ValueError: If ttl is below one second.
        """
        if ttl < 1:
            raise ValueError(f"ttl must be at least 1 second, got {ttl}")
        self._data[key] = (value, self._clock() + ttl)

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        """Fetch values for keys; missing or expired keys yield None."""
        live = set(self._live_keys())
        result: list[str | None] = []
        for key in keys:
            if key not in live:
                result.append(None)
                continue
            value = self._data[key][0]
            result.append(value.decode() if isinstance(value, bytes) else value)
        return result

    async def keys(self, pattern: str) -> list[str]:
        """Return all live keys matching a glob pattern."""
        return [k for k in self._live_keys() if glob_match(pattern, k)]

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        """Walk keys in insertion order, examining ``count`` keys per call.

        The cursor is the offset of the next key to examine; 0 is returned
        once the walk passes the last key.
        """
        live = self._live_keys()
        window = live[cursor : cursor + count]
        next_cursor = cursor + count
        if next_cursor >= len(live):
            next_cursor = 0
        return next_cursor, [k for k in window if glob_match(match, k)]

    async def clear(self) -> None:
        """Remove all keys."""
        self._data.clear()

    def __len__(self) -> int:
        return len(self._live_keys())
