"""In-memory persistence store.

Notes:
- Per-process only: running multiple workers gives each its own records.
- Thread-safe: one lock per key, so updates of different keys never wait on
  each other.
"""

from __future__ import annotations

import threading
from typing import Any

from sliding_limiter.adapters.persistence.base import (
    AbstractPersistenceStore,
    PersistenceRecord,
    RecordTransform,
)


class InMemoryPersistenceStore(AbstractPersistenceStore):
    """Keyed record store guarded by per-key locks.

    Records are kept in their wire shape ({"u": [...]}) so every update goes
    through the same serialization round trip as a networked backend.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}
        self._records: dict[str, dict[str, Any]] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryPersistenceStore(keys={len(self._records)})"

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _existing_lock(self, key: str) -> threading.Lock | None:
        with self._registry_lock:
            return self._key_locks.get(key)

    def update_and_get(self, key: str, transform: RecordTransform) -> PersistenceRecord:
        with self._lock_for(key):
            raw = self._records.get(key)
            current = PersistenceRecord.from_dict(raw) if raw is not None else None
            updated = transform(current)
            self._records[key] = updated.to_dict()
            return PersistenceRecord.from_dict(self._records[key])

    def get(self, key: str) -> PersistenceRecord | None:
        # Reads never register a lock: a key without one was never written.
        lock = self._existing_lock(key)
        if lock is None:
            return None
        with lock:
            raw = self._records.get(key)
            return PersistenceRecord.from_dict(raw) if raw is not None else None

    def snapshot(self, key: str) -> dict[str, Any] | None:
        """Return a copy of the raw stored shape for key (None when absent)."""

        lock = self._existing_lock(key)
        if lock is None:
            return None
        with lock:
            raw = self._records.get(key)
            return {"u": list(raw["u"])} if raw is not None else None

    def keys(self) -> list[str]:
        with self._registry_lock:
            return list(self._records)

    def clear(self) -> None:
        """Remove all records.

        Key locks are kept: an update already holding one must still exclude
        updates of the same key that start after the clear.
        """

        with self._registry_lock:
            self._records.clear()
