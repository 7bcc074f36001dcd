from sliding_limiter.schemas.limits import LimitCheckResponse, LimitStatusResponse

__all__ = ["LimitCheckResponse", "LimitStatusResponse"]
