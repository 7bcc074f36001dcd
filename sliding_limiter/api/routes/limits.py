"""Rate limit check endpoints.

Expose the limiter to callers that cannot embed it, e.g. other services
sharing one quota. Each check records a call for the qualifier in the path.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sliding_limiter.core.rate_limit import get_rate_limiter
from sliding_limiter.schemas.limits import LimitCheckResponse, LimitStatusResponse
from sliding_limiter.services.rate_limiter import GenericRateLimiter

router = APIRouter(tags=["Limits"])


@router.post("/limits/{qualifier}/check", response_model=LimitCheckResponse)
def check_limit(
    qualifier: str,
    limiter: GenericRateLimiter = Depends(get_rate_limiter),
) -> LimitCheckResponse:
    """Record one call for qualifier and report whether it was admitted.

    A rejected call is a regular 200 response with admitted=false; backend
    failures surface as 503 through the exception handlers.
    """
    admitted = limiter.check_and_record(qualifier)
    return LimitCheckResponse(
        qualifier=qualifier,
        admitted=admitted,
        quota_exceeded=not admitted,
        max_calls=limiter.configuration.max_calls,
        period_seconds=limiter.configuration.period_seconds,
    )


@router.get("/limits/{qualifier}", response_model=LimitStatusResponse)
def limit_status(
    qualifier: str,
    limiter: GenericRateLimiter = Depends(get_rate_limiter),
) -> LimitStatusResponse:
    """Report whether the next call for qualifier would be rejected, recording nothing."""
    return LimitStatusResponse(
        qualifier=qualifier,
        quota_exceeded=limiter.is_quota_already_exceeded(qualifier),
        max_calls=limiter.configuration.max_calls,
        period_seconds=limiter.configuration.period_seconds,
    )
