"""Time source adapters."""

from sliding_limiter.adapters.timestamp.base import AbstractTimestampProvider
from sliding_limiter.adapters.timestamp.system import SystemTimestampProvider

__all__ = [
    "AbstractTimestampProvider",
    "SystemTimestampProvider",
]
