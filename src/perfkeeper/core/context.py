"""Per unit-of-work aggregation of timing fields.

Instrumentation call-sites merge partial fields into the context of the
current unit of work (one request, one job). At the end of the unit of work
the context is materialized into exactly one record, saved, and reset.
"""

import logging
import time
import traceback
from collections.abc import Collection, Mapping
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

from perfkeeper.core.models import (
    RECORD_TYPES,
    Record,
    RecordKind,
    TraceRecord,
    timestamp_fields,
)

logger = logging.getLogger(__name__)

DEFAULT_RECORDER = "performance"

# Fields a later merge may replace; everything else is fill-gap only.
OVERWRITABLE_FIELDS = frozenset({"status"})

_FAILURE_STATUS: dict[RecordKind, int | str] = {
    RecordKind.REQUEST: 500,
    RecordKind.API: 500,
    RecordKind.CUSTOM: "error",
    RecordKind.JOB: "exception",
}

_BACKTRACE_LINES = 20

_IDENTIFIED_KINDS = {RecordKind.REQUEST, RecordKind.API, RecordKind.TRACE}


class ContextState(Enum):
    """Lifecycle of an aggregation context."""

    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FLUSHED = "flushed"


class RecordSink(Protocol):
    """Anything that can persist a finished record."""

    async def save(self, record: Record) -> str | None: ...


class AggregationContext:
    """Mutable field bag for one unit of work.

    Never shared between concurrent units of work. ``flush`` resets the
    context on every path, so flushing twice writes at most one record.

    Args:
        work_id: Unique id of the unit of work (the request id for requests).
        kind: Record kind produced by the default flush.
    """

    def __init__(self, work_id: str, kind: RecordKind = RecordKind.REQUEST) -> None:
        self.work_id = work_id
        self.kind = kind
        self._fields: dict[str, Any] = {}
        self._ignore: set[str] = set()
        self._tracings: list[dict[str, Any]] = []
        self.record: Record | None = None
        self.state = ContextState.EMPTY
        self._start()

    def _start(self) -> None:
        self.started_at = datetime.now(UTC)
        self._started = time.perf_counter()

    @property
    def fields(self) -> dict[str, Any]:
        """Copy of the accumulated fields."""
        return dict(self._fields)

    @property
    def tracings(self) -> list[dict[str, Any]]:
        """Copy of the accumulated trace events."""
        return list(self._tracings)

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the unit of work started."""
        return (time.perf_counter() - self._started) * 1000

    def merge(
        self,
        fields: Mapping[str, Any] | None = None,
        /,
        *,
        overwrite: Collection[str] = (),
        **kwargs: Any,
    ) -> None:
        """Merge fields from one instrumentation call-site.

        Fields already set are kept unless they are overwritable (final
        status) or named in ``overwrite``. None values are ignored.
        """
        incoming = {**(fields or {}), **kwargs}
        for name, value in incoming.items():
            if value is None:
                continue
            if (
                name in self._fields
                and name not in OVERWRITABLE_FIELDS
                and name not in overwrite
            ):
                continue
            self._fields[name] = value
            self.state = ContextState.ACCUMULATING

    def add_trace(self, event: Mapping[str, Any]) -> None:
        """Append a sub-event (query, render) to the trace of this unit of work."""
        self._tracings.append(dict(event))
        self.state = ContextState.ACCUMULATING

    def suppress(self, recorder: str = DEFAULT_RECORDER) -> None:
        """Mark a recorder as ignored; a more specific recorder has taken over."""
        self._ignore.add(recorder)

    def is_suppressed(self, recorder: str = DEFAULT_RECORDER) -> bool:
        return recorder in self._ignore

    def record_failure(self, exc: BaseException) -> None:
        """Record an exception that ended the unit of work."""
        status = _FAILURE_STATUS.get(self.kind)
        lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
        self.merge(
            exception=f"{type(exc).__name__}: {exc!s}",
            backtrace=[line.rstrip() for line in lines[-_BACKTRACE_LINES:]],
        )
        if status is not None:
            self.merge(status=status)

    def materialize(self, kind: RecordKind | None = None) -> Record:
        """Build the record for the accumulated fields.

        Timestamps default to the start of the unit of work and duration to
        the elapsed time.
        """
        kind = kind or self.kind
        values: dict[str, Any] = {**timestamp_fields(self.started_at), **self._fields}
        values.setdefault("duration", self.elapsed_ms)
        if kind in _IDENTIFIED_KINDS:
            values.setdefault("request_id", self.work_id)
        return RECORD_TYPES[kind].from_fields(values)

    async def flush(
        self,
        sink: RecordSink,
        *,
        recorder: str = DEFAULT_RECORDER,
        kind: RecordKind | None = None,
    ) -> Record | None:
        """Save the accumulated record once, then reset.

        Args:
            sink: Where the record is saved.
            recorder: Name of the recorder flushing; skipped if suppressed.
            kind: Record kind to produce instead of the context's default.

        Returns:
            The saved record, or None when nothing was written.
        """
        try:
            if self.state is not ContextState.ACCUMULATING:
                return None
            if self.is_suppressed(recorder):
                logger.debug("Skipping %s flush for %s", recorder, self.work_id)
                return None
            record = self.materialize(kind)
            self.record = record
            self.state = ContextState.FLUSHED
            await sink.save(record)
            if self._tracings:
                await sink.save(
                    TraceRecord(
                        **timestamp_fields(self.started_at),
                        request_id=self.work_id,
                        tracings=list(self._tracings),
                    )
                )
            return record
        finally:
            self.reset()

    def reset(self) -> None:
        """Return to a fresh EMPTY state for the next unit of work."""
        self._fields.clear()
        self._ignore.clear()
        self._tracings.clear()
        self.record = None
        self.state = ContextState.EMPTY
        self._start()


_current: ContextVar[AggregationContext | None] = ContextVar(
    "perfkeeper_aggregation_context", default=None
)


def current_context() -> AggregationContext | None:
    """Return the aggregation context bound to the current task, if any."""
    return _current.get()


def bind_context(ctx: AggregationContext) -> Token[AggregationContext | None]:
    """Bind a context to the current task; returns a token for unbinding."""
    return _current.set(ctx)


def unbind_context(token: Token[AggregationContext | None]) -> None:
    """Restore the binding that was active before ``bind_context``."""
    _current.reset(token)
