"""Write path: persist records with the retention TTL."""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from perfkeeper.core.codec import encode
from perfkeeper.core.config import RecorderConfig
from perfkeeper.core.context import AggregationContext, bind_context, unbind_context
from perfkeeper.core.exceptions import InvalidRecord
from perfkeeper.core.models import EventRecord, Record, RecordKind, timestamp_fields
from perfkeeper.core.ports import KeyValueStorePort
from perfkeeper.core.retention import ttl_seconds
from perfkeeper.core.scanner import KeyspaceScanner

logger = logging.getLogger(__name__)


class Recorder:
    """Persists records to a key-value store and scopes units of work.

    Example:
        ```python
        recorder = Recorder(RedisStore.from_url(config.redis_url), config)

        async with recorder.recording(RecordKind.REQUEST) as ctx:
            ctx.merge(controller="HomeController", action="index")
            ...
            ctx.merge(status=200)
        ```
    """

    def __init__(
        self, store: KeyValueStorePort, config: RecorderConfig | None = None
    ) -> None:
        self.store = store
        self.config = config or RecorderConfig()
        self._scanner = KeyspaceScanner(store, self.config)

    @property
    def scanner(self) -> KeyspaceScanner:
        """Scanner reading from the same store and config."""
        return self._scanner

    async def save(self, record: Record) -> str | None:
        """Encode and write a record with the retention TTL.

        Returns:
            The key written, or None when recording is disabled.
        """
        if not self.config.enabled:
            return None
        key, value = encode(record)
        logger.debug("Save key: %s", key)
        logger.debug("Save value: %s", value)
        await self.store.set(key, value, ttl_seconds(self.config.retention))
        return key

    async def create_event(
        self,
        name: str,
        options: dict[str, Any] | None = None,
        at: datetime | None = None,
    ) -> str | None:
        """Save a named event, such as a deploy, to annotate report charts.

        Args:
            name: Event name; must not contain the key delimiter.
            options: Chart annotation options stored with the event.
            at: Event time; defaults to now (UTC).

        Returns:
            The key written, or None when recording is disabled.

        Raises:
            InvalidRecord: If the name contains the delimiter or the options
                are not JSON serializable.
        """
        event = EventRecord(**timestamp_fields(at), name=name, options=dict(options or {}))
        return await self.save(event)

    @asynccontextmanager
    async def recording(
        self,
        kind: RecordKind = RecordKind.REQUEST,
        work_id: str | None = None,
        **fields: Any,
    ) -> AsyncIterator[AggregationContext]:
        """Scope one unit of work.

        Binds a fresh context to the current task and yields it. On every
        exit path the failure (if any) is recorded, the context is flushed
        and cleared, and the task binding is restored. Exceptions from the
        body propagate after the flush.

        A record that cannot be encoded is logged and dropped on either
        path. Any other flush error propagates when the body succeeded and
        is logged when the body failed, so the body's exception always wins.

        Args:
            kind: Kind of the record produced by the flush.
            work_id: Id of the unit of work; a random hex id by default.
            **fields: Initial fields merged into the context.
        """
        ctx = AggregationContext(work_id or uuid.uuid4().hex, kind)
        if fields:
            ctx.merge(fields)
        token = bind_context(ctx)
        failure: Exception | None = None
        try:
            yield ctx
        except Exception as e:
            failure = e
            ctx.record_failure(e)
            raise
        finally:
            try:
                await ctx.flush(self)
            except InvalidRecord as e:
                logger.warning("Dropping record for %s: %s", ctx.work_id, e)
            except Exception:
                if failure is None:
                    raise
                logger.exception("Failed to flush %s after a failure", ctx.work_id)
            finally:
                unbind_context(token)
