"""Storage adapters implementing core ports."""

from perfkeeper.adapters.storage.in_memory import InMemoryKeyValueStore
from perfkeeper.adapters.storage.redis_store import RedisStore

__all__ = [
    "InMemoryKeyValueStore",
    "RedisStore",
]
