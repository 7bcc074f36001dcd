from __future__ import annotations

import time

from sliding_limiter.adapters.timestamp.base import AbstractTimestampProvider


class SystemTimestampProvider(AbstractTimestampProvider):
    """Wall-clock time source backed by time.time()."""

    def get_timestamp_seconds(self) -> float:
        return time.time()
