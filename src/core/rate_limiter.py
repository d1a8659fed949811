"""
Per-client rate limiting backed by Redis.

Requests are bucketed by caller identity (user id when authenticated, client
address otherwise) and by operation type, so reads and writes draw from
separate per-minute budgets. When Redis is unavailable every request is allowed.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Request

from core.auth import get_optional_user
from core.config import Settings, get_settings
from core.redis import get_redis_client
from models.user import User

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class OperationType(Enum):
    """Operation type for rate limiting."""

    READ = "read"
    WRITE = "write"


@dataclass
class RateLimitResult:
    """Result of a rate limit check with all info needed for headers."""

    allowed: bool
    limit: int  # Max requests in current window
    remaining: int  # Requests remaining in current window
    reset: int  # Unix timestamp when window resets
    retry_after: int  # Seconds until retry allowed (0 if allowed)


class RateLimitExceededError(Exception):
    """Raised when rate limit is exceeded."""

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__("Rate limit exceeded")


def get_operation_type(method: str) -> OperationType:
    """Safe methods are reads; everything else is a write."""
    if method in ("GET", "HEAD", "OPTIONS"):
        return OperationType.READ
    return OperationType.WRITE


def _allow_all(limit: int) -> RateLimitResult:
    return RateLimitResult(
        allowed=True, limit=limit, remaining=limit, reset=0, retry_after=0,
    )


async def check_rate_limit(
    identity: str,
    operation_type: OperationType,
    limit: int,
) -> RateLimitResult:
    """
    Check whether a request from `identity` is allowed in the current window.

    Falls back to allowing requests if Redis is unavailable.
    """
    redis_client = get_redis_client()
    if redis_client is None or not redis_client.is_connected:
        return _allow_all(limit)

    now = int(time.time())
    key = f"rate:{identity}:{operation_type.value}:min"
    state = await redis_client.record_request(key, now, WINDOW_SECONDS, limit)
    if state is None:
        return _allow_all(limit)

    if not state.allowed:
        logger.warning(
            "Rate limit exceeded for %s (%s)", identity, operation_type.value,
        )
    return RateLimitResult(
        allowed=state.allowed,
        limit=limit,
        remaining=max(0, state.remaining),
        reset=now + WINDOW_SECONDS,
        retry_after=0 if state.allowed else state.retry_after,
    )


async def enforce_rate_limit(
    request: Request,
    viewer: User | None = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Router-level dependency that applies the per-minute limit.

    Stores the result on `request.state.rate_limit_info` for the headers
    middleware.

    Raises:
        RateLimitExceededError: If the caller is over its budget.
    """
    operation_type = get_operation_type(request.method)
    if operation_type == OperationType.READ:
        limit = settings.rate_limit_read_per_minute
    else:
        limit = settings.rate_limit_write_per_minute

    if viewer is not None:
        identity = f"user:{viewer.id}"
    else:
        identity = f"ip:{request.client.host if request.client else 'unknown'}"

    result = await check_rate_limit(identity, operation_type, limit)
    request.state.rate_limit_info = {
        "limit": result.limit,
        "remaining": result.remaining,
        "reset": result.reset,
    }
    if not result.allowed:
        raise RateLimitExceededError(result)
