"""Tests for the retention policy."""

from datetime import date, timedelta

import pytest

from perfkeeper.core.exceptions import InvalidConfiguration
from perfkeeper.core.retention import days_to_scan, scan_days, ttl_seconds

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]


class TestTtlSeconds:
    """Tests for ttl_seconds()."""

    def test_returns_whole_seconds(self) -> None:
        assert ttl_seconds(timedelta(hours=4)) == 14_400

    def test_truncates_fractional_seconds(self) -> None:
        assert ttl_seconds(timedelta(seconds=90, milliseconds=500)) == 90

    def test_negative_retention_is_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration):
            ttl_seconds(timedelta(seconds=-1))

    @pytest.mark.tra("Core.Retention.EveryKeyExpires")
    @pytest.mark.parametrize("retention", [timedelta(0), timedelta(milliseconds=999)])
    def test_sub_second_retention_is_rejected(self, retention: timedelta) -> None:
        """A zero TTL would leave the key without an expiry."""
        with pytest.raises(InvalidConfiguration, match="at least 1 second"):
            ttl_seconds(retention)


class TestDaysToScan:
    """Tests for days_to_scan()."""

    @pytest.mark.parametrize(
        ("retention", "expected"),
        [
            (timedelta(0), 1),
            (timedelta(hours=4), 2),
            (timedelta(hours=24), 2),
            (timedelta(hours=25), 3),
            (timedelta(days=7), 8),
        ],
    )
    def test_adds_one_day_to_ceiling(self, retention: timedelta, expected: int) -> None:
        """An extra day covers records written just before midnight."""
        assert days_to_scan(retention) == expected

    def test_scan_days_newest_first(self) -> None:
        days = scan_days(timedelta(hours=24), date(2026, 3, 1))

        assert days == [date(2026, 3, 1), date(2026, 2, 28)]
