"""perfkeeper: performance records in a key-value store, queried by key pattern."""

from perfkeeper.adapters.storage import InMemoryKeyValueStore, RedisStore
from perfkeeper.core.codec import decode, decode_record, encode
from perfkeeper.core.config import RecorderConfig
from perfkeeper.core.context import (
    AggregationContext,
    ContextState,
    current_context,
)
from perfkeeper.core.exceptions import (
    InvalidConfiguration,
    InvalidRecord,
    MalformedRecord,
    PerfKeeperError,
    ScanLimitExceeded,
    StoreUnavailable,
)
from perfkeeper.core.models import (
    SCHEMA,
    ApiRecord,
    CustomRecord,
    EventRecord,
    JobRecord,
    Record,
    RecordKind,
    RequestRecord,
    TraceRecord,
)
from perfkeeper.core.query import Query
from perfkeeper.core.recorder import Recorder
from perfkeeper.core.reports import RecordSource
from perfkeeper.core.retention import days_to_scan, ttl_seconds
from perfkeeper.core.scanner import KeyspaceScanner, ScanResult
from perfkeeper.core.stats import median, percentile

__all__ = [
    "SCHEMA",
    "AggregationContext",
    "ApiRecord",
    "ContextState",
    "CustomRecord",
    "EventRecord",
    "InMemoryKeyValueStore",
    "InvalidConfiguration",
    "InvalidRecord",
    "JobRecord",
    "KeyspaceScanner",
    "MalformedRecord",
    "PerfKeeperError",
    "Query",
    "Record",
    "RecordKind",
    "RecordSource",
    "Recorder",
    "RedisStore",
    "RequestRecord",
    "ScanLimitExceeded",
    "ScanResult",
    "StoreUnavailable",
    "TraceRecord",
    "current_context",
    "days_to_scan",
    "decode",
    "decode_record",
    "encode",
    "median",
    "percentile",
    "ttl_seconds",
]
