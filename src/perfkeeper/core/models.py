"""Core record models persisted by perfkeeper.

Every record kind is a frozen dataclass tagged with a ``RecordKind`` and an
ordered tuple of key fields. Key fields are written into the store key so a
wildcard pattern can isolate records by date, kind or identifier; the full
field set is serialized into the stored value.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, ClassVar

from perfkeeper.core.exceptions import MalformedRecord

# Bump whenever any kind's key layout changes, so stale keys never match.
SCHEMA = "1.0.0"

DATETIME_FORMAT = "%Y%m%dT%H%M%S"
DATE_FORMAT = "%Y%m%d"


class RecordKind(StrEnum):
    """Tag identifying the record variant, used as the key prefix."""

    REQUEST = "request"
    API = "api"
    CUSTOM = "custom"
    JOB = "job"
    TRACE = "trace"
    EVENT = "event"


def timestamp_fields(now: datetime | None = None) -> dict[str, Any]:
    """Return the ``datetime``/``datetimei`` pair for a UTC instant.

    Args:
        now: Instant to format. Defaults to the current UTC time.

    Returns:
        Dict with the human-readable and integer timestamps.
    """
    now = now or datetime.now(UTC)
    return {
        "datetime": now.strftime(DATETIME_FORMAT),
        "datetimei": int(now.timestamp()),
    }


@dataclass(frozen=True)
class Record:
    """Base for all persisted timing samples.

    Attributes:
        datetime: Timestamp formatted as ``%Y%m%dT%H%M%S`` (UTC).
        datetimei: Integer Unix timestamp in seconds.
    """

    kind: ClassVar[RecordKind]
    key_fields: ClassVar[tuple[str, ...]]

    datetime: str
    datetimei: int

    def to_fields(self) -> dict[str, Any]:
        """Return all fields that are not ``None``."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_fields(cls, values: dict[str, Any]) -> "Record":
        """Build a record from decoded fields, ignoring unknown names.

        Raises:
            MalformedRecord: If a timestamp field is missing or invalid.
        """
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in values.items() if k in known}
        if data.get("datetime") is None or data.get("datetimei") is None:
            raise MalformedRecord(f"{cls.kind} record is missing its timestamp")
        try:
            data["datetimei"] = int(data["datetimei"])
        except (TypeError, ValueError) as e:
            raise MalformedRecord(f"invalid datetimei: {data['datetimei']!r}") from e
        return cls(**data)

    @property
    def timestamp(self) -> datetime:
        """The record time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.datetimei, tz=UTC)


@dataclass(frozen=True)
class RequestRecord(Record):
    """One inbound web request."""

    kind: ClassVar[RecordKind] = RecordKind.REQUEST
    key_fields: ClassVar[tuple[str, ...]] = (
        "controller",
        "action",
        "format",
        "status",
        "datetime",
        "datetimei",
        "method",
        "path",
        "request_id",
    )

    controller: str | None = None
    action: str | None = None
    format: str | None = None
    status: int | str | None = None
    method: str | None = None
    path: str | None = None
    request_id: str | None = None
    duration: float | None = None
    view_runtime: float | None = None
    db_runtime: float | None = None
    http_referer: str | None = None
    custom_data: dict[str, Any] | None = None
    exception: str | None = None
    backtrace: list[str] | None = None


@dataclass(frozen=True)
class ApiRecord(Record):
    """One call handled by an API framework endpoint."""

    kind: ClassVar[RecordKind] = RecordKind.API
    key_fields: ClassVar[tuple[str, ...]] = (
        "datetime",
        "datetimei",
        "format",
        "path",
        "status",
        "method",
        "request_id",
    )

    format: str | None = None
    path: str | None = None
    status: int | str | None = None
    method: str | None = None
    request_id: str | None = None
    duration: float | None = None
    endpoint_render: float | None = None
    endpoint_run: float | None = None
    format_response: float | None = None
    exception: str | None = None


@dataclass(frozen=True)
class CustomRecord(Record):
    """A user-tagged block of work."""

    kind: ClassVar[RecordKind] = RecordKind.CUSTOM
    key_fields: ClassVar[tuple[str, ...]] = (
        "tag_name",
        "namespace_name",
        "datetime",
        "datetimei",
        "status",
    )

    tag_name: str | None = None
    namespace_name: str | None = None
    status: str | None = None
    duration: float | None = None
    exception: str | None = None


@dataclass(frozen=True)
class JobRecord(Record):
    """One background job execution."""

    kind: ClassVar[RecordKind] = RecordKind.JOB
    key_fields: ClassVar[tuple[str, ...]] = (
        "queue",
        "worker",
        "jid",
        "datetime",
        "datetimei",
        "status",
    )

    queue: str | None = None
    worker: str | None = None
    jid: str | None = None
    status: str | None = None
    duration: float | None = None
    enqueued_ati: int | None = None
    start_timei: int | None = None
    message: str | None = None
    exception: str | None = None


@dataclass(frozen=True)
class TraceRecord(Record):
    """Ordered sub-events (queries, renders) captured during one request."""

    kind: ClassVar[RecordKind] = RecordKind.TRACE
    key_fields: ClassVar[tuple[str, ...]] = ("datetime", "datetimei", "request_id")

    request_id: str | None = None
    tracings: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class EventRecord(Record):
    """A named point in time, such as a deploy, drawn over report charts.

    Attributes:
        name: Event name; also the default annotation label.
        options: Chart annotation options stored as given.
    """

    kind: ClassVar[RecordKind] = RecordKind.EVENT
    key_fields: ClassVar[tuple[str, ...]] = ("datetime", "datetimei", "name")

    name: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


RECORD_TYPES: dict[RecordKind, type[Record]] = {
    RecordKind.REQUEST: RequestRecord,
    RecordKind.API: ApiRecord,
    RecordKind.CUSTOM: CustomRecord,
    RecordKind.JOB: JobRecord,
    RecordKind.TRACE: TraceRecord,
    RecordKind.EVENT: EventRecord,
}
