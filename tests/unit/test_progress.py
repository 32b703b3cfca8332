"""Unit tests for progress reporting and sinks."""
import pytest
from unittest.mock import AsyncMock, Mock

from redis.exceptions import RedisError

from vehicle_ingestion.models.import_batch import ProgressEvent
from vehicle_ingestion.services.progress import (
    CallbackProgressSink,
    NullProgressSink,
    ProgressReporter,
    RedisProgressSink,
    get_progress_key,
)


class TestProgressEvent:
    """Tests for the ProgressEvent model."""

    def test_percentage(self):
        assert ProgressEvent(current=1, total=3).percentage == 33.3
        assert ProgressEvent(current=0, total=0).percentage == 100.0

    def test_rejects_negative_counts(self):
        with pytest.raises(ValueError):
            ProgressEvent(current=-1, total=3)


class TestCallbackProgressSink:
    """Tests for CallbackProgressSink."""

    @pytest.mark.asyncio
    async def test_sync_callback(self):
        received = []
        sink = CallbackProgressSink(received.append)

        await sink.publish(ProgressEvent(current=1, total=2))

        assert received == [ProgressEvent(current=1, total=2)]

    @pytest.mark.asyncio
    async def test_async_callback(self):
        callback = AsyncMock()
        sink = CallbackProgressSink(callback)
        event = ProgressEvent(current=2, total=2, message="done")

        await sink.publish(event)

        callback.assert_awaited_once_with(event)


class TestRedisProgressSink:
    """Tests for RedisProgressSink with a mocked Redis client."""

    @pytest.fixture
    def redis(self):
        client = Mock()
        client.hset = AsyncMock(return_value=1)
        client.expire = AsyncMock(return_value=True)
        return client

    @pytest.mark.asyncio
    async def test_writes_hash_and_refreshes_ttl(self, redis):
        sink = RedisProgressSink(redis, batch_id="abc", ttl_seconds=600)

        await sink.publish(ProgressEvent(current=50, total=200, message="Processed 50 of 200 rows"))

        key = get_progress_key("abc")
        assert key == "import:abc"
        mapping = redis.hset.await_args.kwargs["mapping"]
        assert redis.hset.await_args.args == (key,)
        assert mapping["current"] == "50"
        assert mapping["total"] == "200"
        assert mapping["percentage"] == "25.0"
        assert mapping["message"] == "Processed 50 of 200 rows"
        redis.expire.assert_awaited_once_with(key, 600)

    @pytest.mark.asyncio
    async def test_redis_errors_are_swallowed(self, redis):
        redis.hset.side_effect = RedisError("connection refused")
        sink = RedisProgressSink(redis, batch_id="abc")

        await sink.publish(ProgressEvent(current=1, total=1))

        redis.expire.assert_not_awaited()


class TestProgressReporter:
    """Tests for ProgressReporter bookkeeping."""

    @pytest.mark.asyncio
    async def test_emits_monotonic_events(self):
        received = []
        reporter = ProgressReporter(CallbackProgressSink(received.append), total=100)

        await reporter.report(50)
        await reporter.report(50)
        await reporter.finish("done")

        assert [e.current for e in received] == [50, 50, 100]
        assert received[-1].message == "done"
        assert reporter.current == 100

    @pytest.mark.asyncio
    async def test_rejects_going_backwards(self):
        reporter = ProgressReporter(NullProgressSink(), total=10)
        await reporter.report(5)

        with pytest.raises(ValueError):
            await reporter.report(4)

    @pytest.mark.asyncio
    async def test_rejects_exceeding_total(self):
        reporter = ProgressReporter(None, total=10)

        with pytest.raises(ValueError):
            await reporter.report(11)

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_raise(self):
        def explode(event):
            raise RuntimeError("UI disconnected")

        reporter = ProgressReporter(CallbackProgressSink(explode), total=3)

        event = await reporter.report(3)

        assert event.current == 3
        assert reporter.events == [event]
