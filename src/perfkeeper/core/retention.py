"""Retention policy derived from a single configured duration."""

import math
from datetime import date, timedelta

from perfkeeper.core.exceptions import InvalidConfiguration

ONE_DAY = timedelta(days=1)


def _check(retention: timedelta) -> None:
    if retention < timedelta(0):
        raise InvalidConfiguration(f"retention must not be negative, got {retention}")


def ttl_seconds(retention: timedelta) -> int:
    """Return the per-key expiration in whole seconds.

    Raises:
        InvalidConfiguration: If the retention is shorter than one second,
            which would leave keys without an expiry.
    """
    _check(retention)
    ttl = int(retention.total_seconds())
    if ttl < 1:
        raise InvalidConfiguration(f"retention must be at least 1 second, got {retention}")
    return ttl


def days_to_scan(retention: timedelta) -> int:
    """Return how many trailing days a report must scan.

    The extra day covers records written just before midnight.
    """
    _check(retention)
    return math.ceil(retention / ONE_DAY) + 1


def scan_days(retention: timedelta, today: date) -> list[date]:
    """Return the dates a report scans, newest first."""
    return [today - timedelta(days=offset) for offset in range(days_to_scan(retention))]
