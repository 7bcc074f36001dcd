"""Time source interface.

The limiter reads the clock through this abstraction so the window arithmetic
can be driven deterministically in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractTimestampProvider(ABC):
    """Interface for time sources."""

    @abstractmethod
    def get_timestamp_seconds(self) -> float:
        """Return the current time as seconds since the UNIX epoch.

        Strict monotonicity is not required, only a value usable for
        window arithmetic.
        """
        raise NotImplementedError
