"""Persistence store interfaces.

The limiter depends on this abstraction (not a concrete backend) so the
record storage can be an in-process map, Redis, or any other store offering
an atomic read-modify-write primitive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping


@dataclass
class PersistenceRecord:
    """Persisted state for one storage key.

    Attributes:
        u: Timestamps (seconds) of admitted calls still considered recent at
            the time of the last write. Order carries no meaning.
    """

    u: list[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[float]]:
        """Return the wire shape stored by backends: {"u": [...]}"""
        return {"u": [float(ts) for ts in self.u]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "PersistenceRecord":
        """Build a record from its wire shape; a missing "u" means no usages."""
        if not data:
            return cls()
        return cls(u=[float(ts) for ts in data.get("u") or []])


RecordTransform = Callable[[PersistenceRecord | None], PersistenceRecord]


class AbstractPersistenceStore(ABC):
    """Interface for keyed record stores with atomic updates."""

    @abstractmethod
    def update_and_get(self, key: str, transform: RecordTransform) -> PersistenceRecord:
        """Atomically replace the record stored under key.

        The transform receives the current record (None when absent) and
        returns the new one, which is committed with no other writer's update
        for the same key interleaved between the read and the write. Stores
        may invoke the transform more than once when they retry.

        Args:
            key: Storage key of the record.
            transform: Pure function from the old record to the new record.

        Returns:
            The committed record.

        Raises:
            PersistenceAppError: If the backend fails to read or commit.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> PersistenceRecord | None:
        """Return the record stored under key, or None when absent."""
        raise NotImplementedError
