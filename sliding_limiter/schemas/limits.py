from __future__ import annotations

from pydantic import BaseModel, Field


class LimitStatusResponse(BaseModel):
    """Quota state of one qualifier."""

    qualifier: str = Field(..., description="Qualifier the quota applies to")
    quota_exceeded: bool = Field(..., description="True when the next call would be rejected")
    max_calls: int = Field(..., description="Maximum admitted calls per window")
    period_seconds: float = Field(..., description="Window length in seconds")


class LimitCheckResponse(LimitStatusResponse):
    """Outcome of recording one call."""

    admitted: bool = Field(..., description="True when the call was admitted and recorded")
