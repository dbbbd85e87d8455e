"""Application services."""

from .idea_agent import IdeaAgent
from .index_service import IndexService
from .rate_limiter import FixedWindowRateLimiter, RateLimitPolicy, RateLimitResult, RateLimitStore

__all__ = [
    "FixedWindowRateLimiter",
    "IdeaAgent",
    "IndexService",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimitStore",
]
