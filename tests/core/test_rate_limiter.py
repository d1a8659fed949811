"""Tests for the Redis-based rate limiter module."""
import time

from core.rate_limiter import (
    OperationType,
    check_rate_limit,
    get_operation_type,
)
from core.redis import RedisClient, set_redis_client


class TestGetOperationType:
    """Tests for get_operation_type function."""

    def test__get_operation_type__safe_methods_are_reads(self) -> None:
        for method in ("GET", "HEAD", "OPTIONS"):
            assert get_operation_type(method) == OperationType.READ

    def test__get_operation_type__mutations_are_writes(self) -> None:
        for method in ("POST", "PUT", "PATCH", "DELETE"):
            assert get_operation_type(method) == OperationType.WRITE


class TestCheckRateLimit:
    """Tests for check_rate_limit against a real Redis."""

    async def test__check__allows_request_under_limit(
        self, redis_client: RedisClient,  # noqa: ARG002
    ) -> None:
        result = await check_rate_limit("user:1", OperationType.READ, limit=5)

        assert result.allowed is True
        assert result.limit == 5
        assert result.remaining == 4
        assert result.reset >= int(time.time())

    async def test__check__blocks_request_over_limit(
        self, redis_client: RedisClient,  # noqa: ARG002
    ) -> None:
        """The request after `limit` allowed ones is rejected with a retry hint."""
        for _ in range(3):
            assert (await check_rate_limit("user:2", OperationType.WRITE, limit=3)).allowed

        result = await check_rate_limit("user:2", OperationType.WRITE, limit=3)

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after > 0

    async def test__check__identities_and_operations_have_separate_buckets(
        self, redis_client: RedisClient,  # noqa: ARG002
    ) -> None:
        assert (await check_rate_limit("user:3", OperationType.WRITE, limit=1)).allowed
        assert not (await check_rate_limit("user:3", OperationType.WRITE, limit=1)).allowed

        assert (await check_rate_limit("user:4", OperationType.WRITE, limit=1)).allowed
        assert (await check_rate_limit("user:3", OperationType.READ, limit=1)).allowed

    async def test__check__recovers_after_script_flush(
        self, redis_client: RedisClient,
    ) -> None:
        """A Redis restart drops cached scripts; the client reloads and retries."""
        await redis_client._client.script_flush()

        result = await check_rate_limit("user:5", OperationType.READ, limit=2)

        assert result.allowed is True
        assert result.remaining == 1


class TestFailOpen:
    """Without Redis every request is allowed."""

    async def test__check__no_client_allows(self) -> None:
        set_redis_client(None)

        result = await check_rate_limit("user:6", OperationType.WRITE, limit=1)

        assert result.allowed is True
        assert result.remaining == 1

    async def test__check__disabled_client_allows(self) -> None:
        client = RedisClient(url="redis://localhost:1", enabled=False)
        await client.connect()
        set_redis_client(client)
        try:
            for _ in range(3):
                assert (await check_rate_limit("user:7", OperationType.WRITE, limit=1)).allowed
        finally:
            set_redis_client(None)

    async def test__connect__unreachable_redis_stays_disconnected(self) -> None:
        client = RedisClient(url="redis://localhost:1")
        await client.connect()

        assert client.is_connected is False
        assert await client.ping() is False


class TestRecordRequest:
    """Tests for RedisClient.record_request."""

    async def test__record_request__rejected_requests_are_not_counted(
        self, redis_client: RedisClient,
    ) -> None:
        now = int(time.time())
        first = await redis_client.record_request("rate:test:window", now, 60, limit=1)
        for _ in range(3):
            rejected = await redis_client.record_request("rate:test:window", now, 60, limit=1)
            assert rejected.allowed is False

        assert first.allowed is True
        assert first.remaining == 0
        assert rejected.retry_after == 60
        assert await redis_client._client.zcard("rate:test:window") == 1

    async def test__record_request__old_entries_leave_the_window(
        self, redis_client: RedisClient,
    ) -> None:
        then = int(time.time()) - 120
        await redis_client.record_request("rate:test:slide", then, 60, limit=1)

        state = await redis_client.record_request("rate:test:slide", then + 61, 60, limit=1)

        assert state.allowed is True

    async def test__record_request__disconnected_returns_none(self) -> None:
        client = RedisClient(url="redis://localhost:1", enabled=False)

        assert await client.record_request("rate:test:none", 0, 60, limit=1) is None
