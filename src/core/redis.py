"""
Redis connection used by the rate limiter.

Only one thing is stored in Redis: a sorted set of recent request timestamps
per (identity, operation) bucket. Every call fails soft and returns None when
Redis is down, so callers can let the request through.
"""
import logging
import uuid
from typing import NamedTuple

from redis.asyncio import ConnectionPool, Redis
from redis.commands.core import AsyncScript
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# KEYS[1] bucket; ARGV now, window, limit, member id.
# Returns {allowed, remaining, retry_after}.
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
local count = redis.call('ZCARD', key)

if count < limit then
    redis.call('ZADD', key, now, now .. ':' .. ARGV[4])
    redis.call('EXPIRE', key, window)
    return {1, limit - count - 1, 0}
end

local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
local retry_after = 1
if oldest[2] then
    retry_after = math.max(1, math.ceil(oldest[2] + window - now))
end
return {0, 0, retry_after}
"""


class WindowState(NamedTuple):
    """Outcome of recording one request in a sliding window bucket."""

    allowed: bool
    remaining: int
    retry_after: int


class RedisClient:
    """Pooled async Redis connection holding the sliding window buckets."""

    def __init__(self, url: str, enabled: bool = True, pool_size: int = 20) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        self._client: Redis | None = None
        self._sliding_window: AsyncScript | None = None

    async def connect(self) -> None:
        """Open the pool. On failure the client stays disconnected."""
        if not self._enabled:
            logger.info("Redis disabled by configuration; rate limiting is off")
            return
        pool = ConnectionPool.from_url(self._url, max_connections=self._pool_size)
        client = Redis(connection_pool=pool)
        try:
            await client.ping()
        except RedisError as e:
            logger.warning("Redis connection failed, rate limiting is off: %s", e)
            await client.aclose(close_connection_pool=True)
            return
        self._client = client
        # AsyncScript reloads itself when Redis answers NOSCRIPT
        self._sliding_window = client.register_script(SLIDING_WINDOW_SCRIPT)
        logger.info("Redis connected")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose(close_connection_pool=True)
            self._client = None
            self._sliding_window = None
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def ping(self) -> bool:
        """Check Redis connectivity for the health endpoint."""
        if not self._client:
            return False
        try:
            return await self._client.ping()
        except RedisError:
            return False

    async def flushdb(self) -> bool:
        """Drop every bucket (tests only). Returns False if unavailable."""
        if not self._client:
            return False
        try:
            await self._client.flushdb()
            return True
        except RedisError as e:
            logger.warning("Redis FLUSHDB failed: %s", e)
            return False

    async def record_request(
        self,
        key: str,
        now: int,
        window_seconds: int,
        limit: int,
    ) -> WindowState | None:
        """
        Count one request against `key` if the window has room for it.

        Rejected requests are not recorded, so a client that keeps retrying
        while limited does not extend its own penalty.

        Returns:
            The window state, or None if Redis is unavailable.
        """
        if self._sliding_window is None:
            return None
        try:
            allowed, remaining, retry_after = await self._sliding_window(
                keys=[key],
                args=[now, window_seconds, limit, uuid.uuid4().hex],
            )
        except RedisError as e:
            logger.warning("Rate limit lookup failed for %s: %s", key, e)
            return None
        return WindowState(bool(allowed), int(remaining), int(retry_after))


class _RedisState:
    """Holder for the process-wide client set up in the app lifespan."""

    client: RedisClient | None = None


_state = _RedisState()


def get_redis_client() -> RedisClient | None:
    return _state.client


def set_redis_client(client: RedisClient | None) -> None:
    _state.client = client
