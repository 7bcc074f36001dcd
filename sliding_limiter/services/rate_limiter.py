"""Sliding-window call-rate limiter.

Each qualifier (user id, IP, API key, ...) owns one record holding the
timestamps of its recently admitted calls. A check prunes timestamps older
than the window, compares the remaining count against the quota and, when
admitted, appends the current timestamp. The whole read-prune-decide-write
cycle runs as a single atomic update of the persistence store, so concurrent
checks for one qualifier behave as if they ran one after another.
"""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote

from sliding_limiter.adapters.persistence.base import AbstractPersistenceStore, PersistenceRecord
from sliding_limiter.adapters.timestamp.base import AbstractTimestampProvider
from sliding_limiter.core.config import LimiterSettings
from sliding_limiter.core.errors import ConfigurationAppError, QuotaExceededAppError

logger = logging.getLogger(__name__)

DEFAULT_QUALIFIER = "default_qualifier"


@dataclass(frozen=True)
class RateLimiterConfiguration:
    """Immutable configuration of one limiter instance.

    Attributes:
        name: Namespace of the limiter's storage keys.
        period_seconds: Length of the trailing window in seconds.
        max_calls: Maximum number of admitted calls per qualifier per window.
        debug: Log every decision at DEBUG level. Has no effect on admission.

    Raises:
        ConfigurationAppError: If any field is out of range.
    """

    name: str
    period_seconds: float
    max_calls: int
    debug: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationAppError(
                code="limiter_invalid_name",
                message="name must be a non-empty string",
                details={"field": "name"},
            )
        if (
            isinstance(self.period_seconds, bool)
            or not isinstance(self.period_seconds, (int, float))
            or not math.isfinite(self.period_seconds)
            or not self.period_seconds > 0
        ):
            raise ConfigurationAppError(
                code="limiter_invalid_period",
                message="period_seconds must be a finite number > 0",
                details={"field": "period_seconds", "limiter": self.name},
            )
        if isinstance(self.max_calls, bool) or not isinstance(self.max_calls, int) or self.max_calls < 1:
            raise ConfigurationAppError(
                code="limiter_invalid_max_calls",
                message="max_calls must be an integer >= 1",
                details={"field": "max_calls", "limiter": self.name},
            )

    @classmethod
    def from_settings(cls, limiter_settings: LimiterSettings) -> "RateLimiterConfiguration":
        return cls(
            name=limiter_settings.name,
            period_seconds=limiter_settings.period_seconds,
            max_calls=limiter_settings.max_calls,
            debug=limiter_settings.debug,
        )


def build_storage_key(name: str, qualifier: str) -> str:
    """Build the storage key of a (limiter name, qualifier) pair.

    Both parts are percent-encoded before joining with "/", so the separator
    never occurs inside a part and distinct pairs never share a key.
    """
    return f"{quote(name, safe='')}/{quote(qualifier, safe='')}"


def hash_qualifier(qualifier: str) -> str:
    """Hash a qualifier for logging without exposing it."""
    return hashlib.sha256(qualifier.encode()).hexdigest()[:16]


@dataclass
class _Verdict:
    admitted: bool = False
    kept: int = 0
    expired: int = 0


ErrorFactory = Callable[[RateLimiterConfiguration], Exception]


class GenericRateLimiter:
    """Per-qualifier sliding-window limiter over an atomic record store."""

    def __init__(
        self,
        configuration: RateLimiterConfiguration,
        persistence_store: AbstractPersistenceStore,
        timestamp_provider: AbstractTimestampProvider,
    ) -> None:
        self.configuration = configuration
        self._store = persistence_store
        self._timestamp_provider = timestamp_provider

    def __repr__(self) -> str:  # pragma: no cover - representation only
        cfg = self.configuration
        return (
            f"GenericRateLimiter(name={cfg.name!r}, period_seconds={cfg.period_seconds}, "
            f"max_calls={cfg.max_calls})"
        )

    def _recent_usages(self, record: PersistenceRecord | None, now: float) -> tuple[list[float], int]:
        """Split stored timestamps into those still inside the window.

        Returns:
            Tuple of (kept timestamps, number of expired timestamps).
        """
        usages = record.u if record is not None else []
        floor = now - self.configuration.period_seconds
        kept = [ts for ts in usages if ts > floor]
        return kept, len(usages) - len(kept)

    def check_and_record(self, qualifier: str = DEFAULT_QUALIFIER) -> bool:
        """Decide admission of one call and record it when admitted.

        Args:
            qualifier: Identifier of the caller being limited.

        Returns:
            True when the call is admitted (and recorded), False when the
            qualifier already used its quota for the current window.

        Raises:
            Exception: Any error from the persistence store, unchanged.
        """
        now = self._timestamp_provider.get_timestamp_seconds()
        key = build_storage_key(self.configuration.name, qualifier)
        verdict = _Verdict()

        def _transform(record: PersistenceRecord | None) -> PersistenceRecord:
            kept, expired = self._recent_usages(record, now)
            # Overwritten on every run; a retrying store keeps the last verdict.
            verdict.admitted = len(kept) < self.configuration.max_calls
            verdict.kept = len(kept)
            verdict.expired = expired
            if verdict.admitted:
                return PersistenceRecord(u=[*kept, now])
            return PersistenceRecord(u=kept)

        self._store.update_and_get(key, _transform)

        if self.configuration.debug:
            logger.debug(
                "rate_limit.admitted" if verdict.admitted else "rate_limit.rejected",
                extra={
                    "limiter": self.configuration.name,
                    "qualifier_hash": hash_qualifier(qualifier),
                    "recent_calls": verdict.kept,
                    "expired_calls": verdict.expired,
                    "max_calls": self.configuration.max_calls,
                    "period_s": self.configuration.period_seconds,
                },
            )

        return verdict.admitted

    def is_quota_exceeded_or_record_usage(self, qualifier: str = DEFAULT_QUALIFIER) -> bool:
        """Return True when the call is rejected, otherwise record it and return False."""
        return not self.check_and_record(qualifier)

    def reject_on_quota_exceeded_or_record_usage(
        self,
        qualifier: str = DEFAULT_QUALIFIER,
        error_factory: ErrorFactory | None = None,
    ) -> None:
        """Record the call or raise when the quota is exceeded.

        Args:
            qualifier: Identifier of the caller being limited.
            error_factory: Optional builder of the exception to raise; defaults
                to QuotaExceededAppError.

        Raises:
            QuotaExceededAppError: When rejected and no error_factory is given.
        """
        if self.check_and_record(qualifier):
            return

        if error_factory is not None:
            raise error_factory(self.configuration)

        raise QuotaExceededAppError(
            code="quota_exceeded",
            message="Too many requests. Call quota exceeded for this period.",
            details={
                "limiter": self.configuration.name,
                "max_calls": self.configuration.max_calls,
                "period_seconds": self.configuration.period_seconds,
                "retry_after": self.configuration.period_seconds,
            },
        )

    def is_quota_already_exceeded(self, qualifier: str = DEFAULT_QUALIFIER) -> bool:
        """Report whether the next call would be rejected, without recording anything."""
        now = self._timestamp_provider.get_timestamp_seconds()
        record = self._store.get(build_storage_key(self.configuration.name, qualifier))
        kept, _ = self._recent_usages(record, now)
        return len(kept) >= self.configuration.max_calls
