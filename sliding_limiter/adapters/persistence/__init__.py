"""Persistence adapter layer - keyed record stores with atomic updates."""

from sliding_limiter.adapters.persistence.base import (
    AbstractPersistenceStore,
    PersistenceRecord,
    RecordTransform,
)
from sliding_limiter.adapters.persistence.factory import create_persistence_store
from sliding_limiter.adapters.persistence.in_memory import InMemoryPersistenceStore
from sliding_limiter.adapters.persistence.redis_store import RedisPersistenceStore

__all__ = [
    "AbstractPersistenceStore",
    "InMemoryPersistenceStore",
    "PersistenceRecord",
    "RecordTransform",
    "RedisPersistenceStore",
    "create_persistence_store",
]
