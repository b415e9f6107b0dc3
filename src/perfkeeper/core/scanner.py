"""Keyspace scanner: pattern-based retrieval of records from the store.

Keys are enumerated either with a single blocking KEYS listing or with an
incremental SCAN cursor, then values are fetched with one MGET.
"""

import logging
import re
from typing import NamedTuple

from perfkeeper.core.config import RecorderConfig
from perfkeeper.core.exceptions import InvalidConfiguration, ScanLimitExceeded
from perfkeeper.core.ports import KeyValueStorePort

logger = logging.getLogger(__name__)

DATE_SCOPED_BATCH = 1000
LOOKUP_BATCH = 10
DEFAULT_BATCH = 100
LARGE_BATCH_WARNING = 10_000

_DATE_SCOPED = re.compile(r"datetime|\d{8}")
_LOOKUP = re.compile(r"request_id")


class ScanResult(NamedTuple):
    """Sorted keys and their values, positionally aligned."""

    keys: list[str]
    values: list[str | None]


def validate_batch_size(count: int) -> None:
    """Validate a SCAN batch size.

    Raises:
        InvalidConfiguration: If count is below 1.
    """
    if count < 1:
        raise InvalidConfiguration(f"scan_count must be >= 1, got {count}")
    if count > LARGE_BATCH_WARNING:
        logger.warning(
            "scan_count (%d) is very high and may cause long-running SCAN calls; "
            "recommended range is 1-1000",
            count,
        )


class KeyspaceScanner:
    """Retrieve matching keys and values from a key-value store.

    Args:
        store: Adapter implementing KeyValueStorePort.
        config: Selects SCAN vs KEYS and the batch sizing policy.
    """

    def __init__(self, store: KeyValueStorePort, config: RecorderConfig) -> None:
        self.store = store
        self.config = config

    def determine_batch_size(self, pattern: str) -> int:
        """Pick a SCAN batch size from the shape of the pattern.

        Date-scoped patterns touch large contiguous ranges and get large
        batches; single request lookups get small ones.
        """
        if not self.config.scan_count_auto_tune:
            return self.config.scan_count
        if _DATE_SCOPED.search(pattern):
            return DATE_SCOPED_BATCH
        if _LOOKUP.search(pattern):
            return LOOKUP_BATCH
        return DEFAULT_BATCH

    async def _scan_keys(self, pattern: str) -> list[str]:
        count = self.determine_batch_size(pattern)
        validate_batch_size(count)

        found: set[str] = set()
        cursor = 0
        for _ in range(self.config.max_scan_iterations):
            cursor, batch = await self.store.scan(cursor, match=pattern, count=count)
            found.update(batch)
            if cursor == 0:
                return sorted(found)
        raise ScanLimitExceeded(
            f"SCAN for {pattern!r} did not finish within "
            f"{self.config.max_scan_iterations} iterations"
        )

    async def list_keys(self, pattern: str) -> list[str]:
        """Return the sorted, de-duplicated keys matching a pattern."""
        if self.config.use_scan:
            return await self._scan_keys(pattern)
        logger.debug(
            "Using blocking KEYS listing; enable use_scan for non-blocking SCAN"
        )
        return sorted(set(await self.store.keys(pattern)))

    async def fetch(self, pattern: str) -> ScanResult:
        """Fetch keys matching a pattern together with their values.

        Args:
            pattern: Glob-style pattern with ``*`` wildcards.

        Returns:
            ScanResult with sorted keys and aligned values. Empty when
            nothing matches, without an MGET round trip.
        """
        logger.debug("Store query: %s", pattern)
        keys = await self.list_keys(pattern)
        if not keys:
            return ScanResult([], [])
        values = await self.store.mget(keys)
        logger.debug("Found %d records for %s", len(values), pattern)
        return ScanResult(keys, list(values))
