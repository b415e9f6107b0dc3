"""Report assemblers over decoded records.

``RecordSource`` pulls and decodes the records for a query; the functions
below shape them into listings or per-minute aggregates.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from typing import Any

from perfkeeper.core.codec import decode_record
from perfkeeper.core.exceptions import MalformedRecord
from perfkeeper.core.models import EventRecord, Record, RecordKind
from perfkeeper.core.query import Direction, Query
from perfkeeper.core.retention import scan_days
from perfkeeper.core.scanner import KeyspaceScanner
from perfkeeper.core.stats import average, median, percentile

logger = logging.getLogger(__name__)

MINUTE = 60


class RecordSource:
    """Records of one kind matching a query across the retention window.

    Args:
        scanner: Scanner used for every day's pattern.
        kind: Record kind to load.
        query: Filters; when ``query.on`` is set only that day is scanned.
        today: Newest day to scan (UTC). Defaults to the current date.
    """

    def __init__(
        self,
        scanner: KeyspaceScanner,
        kind: RecordKind,
        query: Query | None = None,
        today: date | None = None,
    ) -> None:
        self.scanner = scanner
        self.kind = kind
        self.query = query or Query()
        self.today = today or datetime.now(UTC).date()

    def days(self) -> list[date]:
        if self.query.on is not None:
            return [self.query.on]
        return scan_days(self.scanner.config.retention, self.today)

    async def records(self) -> list[Record]:
        """Load, decode and return matching records, newest first.

        Malformed entries are skipped with a warning.
        """
        records: list[Record] = []
        for day in self.days():
            pattern = self.query.for_day(day).pattern(self.kind)
            result = await self.scanner.fetch(pattern)
            for key, value in zip(result.keys, result.values, strict=True):
                try:
                    records.append(decode_record(key, value))
                except MalformedRecord as e:
                    logger.warning("Skipping malformed record %s: %s", key, e)
        records.sort(key=lambda r: r.datetimei, reverse=True)
        return records


def sort_records(
    records: Iterable[Record], sort: str = "datetimei", direction: Direction = "desc"
) -> list[Record]:
    """Sort records by a field; records without the field go last."""
    records = list(records)
    present = [r for r in records if getattr(r, sort, None) is not None]
    missing = [r for r in records if getattr(r, sort, None) is None]
    present.sort(key=lambda r: getattr(r, sort), reverse=direction == "desc")
    return present + missing


def breakdown(records: Sequence[Record], query: Query) -> list[Record]:
    """All records sorted by the query's sort field and direction."""
    return sort_records(records, query.sort, query.direction)


def crashes(records: Sequence[Record], query: Query) -> list[Record]:
    """Records that ended with a server error, sorted like ``breakdown``."""
    failed = [r for r in records if str(getattr(r, "status", "")) == "500"]
    return sort_records(failed, query.sort, query.direction)


def recent(
    records: Iterable[Record],
    now: datetime,
    window: timedelta,
    limit: int | None = None,
) -> list[Record]:
    """Records newer than ``now - window``, most recent first."""
    since = int((now - window).timestamp())
    newer = [r for r in records if r.datetimei > since]
    newer.sort(key=lambda r: r.datetimei, reverse=True)
    return newer[:limit] if limit is not None else newer


def _minute_buckets(now: datetime, window: timedelta) -> list[int]:
    last = int(now.timestamp()) // MINUTE * MINUTE
    size = int(window.total_seconds()) // MINUTE
    return [last - (size - 1 - i) * MINUTE for i in range(size)]


def _durations_by_minute(records: Iterable[Record]) -> dict[int, list[float]]:
    grouped: dict[int, list[float]] = defaultdict(list)
    for record in records:
        grouped[record.datetimei // MINUTE * MINUTE].append(
            getattr(record, "duration", None)
        )
    return grouped


def throughput(
    records: Iterable[Record], now: datetime, window: timedelta
) -> list[tuple[int, int]]:
    """Per-minute record counts over the window, oldest minute first.

    Every minute of the window is present; empty minutes count 0.
    """
    grouped = _durations_by_minute(records)
    return [
        (minute, len(grouped.get(minute, [])))
        for minute in _minute_buckets(now, window)
    ]


def response_time(
    records: Iterable[Record], now: datetime, window: timedelta
) -> list[tuple[int, float | None]]:
    """Per-minute average duration over the window; None for empty minutes."""
    grouped = _durations_by_minute(records)
    return [
        (minute, average(d for d in grouped.get(minute, []) if d is not None))
        for minute in _minute_buckets(now, window)
    ]


def _durations(records: Iterable[Record]) -> list[float]:
    return [d for r in records if (d := getattr(r, "duration", None)) is not None]


def percentiles(records: Iterable[Record]) -> dict[str, float | None]:
    """p50, p95 and p99 of record durations."""
    durations = _durations(records)
    return {
        "p50": percentile(durations, 50),
        "p95": percentile(durations, 95),
        "p99": percentile(durations, 99),
    }


def requests_summary(
    records: Iterable[Record], group_by: Sequence[str] = ("controller", "action")
) -> list[dict[str, Any]]:
    """Per-group count and duration statistics, busiest group first.

    Groups are named by joining the ``group_by`` field values with ``#``.
    """
    groups: dict[str, list[Record]] = defaultdict(list)
    for record in records:
        name = "#".join(str(getattr(record, f, None) or "") for f in group_by)
        groups[name].append(record)

    rows = []
    for name, members in groups.items():
        durations = _durations(members)
        rows.append(
            {
                "group": name,
                "count": len(members),
                "average": average(durations),
                "median": median(durations),
                "p95": percentile(durations, 95),
                "slowest": max(durations) if durations else None,
            }
        )
    rows.sort(key=lambda row: (-row["count"], row["group"]))
    return rows


ANNOTATION_COLOR = "#00E396"


def _annotation(event: EventRecord) -> dict[str, Any]:
    label = event.options.get("label") or {}
    return {
        "x": event.datetimei * 1000,
        "borderColor": event.options.get("borderColor", ANNOTATION_COLOR),
        "label": {
            "borderColor": label.get("borderColor", ANNOTATION_COLOR),
            "orientation": label.get("orientation", "horizontal"),
            "text": label.get("text", event.name),
        },
    }


def annotations(records: Iterable[Record]) -> dict[str, list[dict[str, Any]]]:
    """Chart x-axis annotations for event records, oldest first.

    ``x`` is the event time in milliseconds. Colors and label fields fall
    back to defaults when the event's options leave them out; the label
    text defaults to the event name.
    """
    events = [r for r in records if isinstance(r, EventRecord)]
    events.sort(key=lambda r: r.datetimei)
    return {"xaxis": [_annotation(e) for e in events]}
