"""Progress reporting for import batches.

The orchestrator pushes {current, total, message} events through a
ProgressReporter into a ProgressSink. Sinks are one-directional: nothing a
sink does can stop or fail a batch.
"""
import inspect
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Union

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from vehicle_ingestion.config import import_settings
from vehicle_ingestion.models.import_batch import ProgressEvent

logger = structlog.get_logger(__name__)

# Redis key constants
PROGRESS_KEY_PREFIX = "import:"

ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


def get_progress_key(batch_id: str) -> str:
    """Get Redis key for a batch's progress hash."""
    return f"{PROGRESS_KEY_PREFIX}{batch_id}"


class ProgressSink(ABC):
    """Consumer of progress events (UI bridge, Redis, test recorder)."""

    @abstractmethod
    async def publish(self, event: ProgressEvent) -> None:
        pass


class NullProgressSink(ProgressSink):
    """Discards events; used when the caller does not watch progress."""

    async def publish(self, event: ProgressEvent) -> None:
        return None


class CallbackProgressSink(ProgressSink):
    """Forwards events to a plain or async callable."""

    def __init__(self, callback: ProgressCallback):
        self.callback = callback

    async def publish(self, event: ProgressEvent) -> None:
        result = self.callback(event)
        if inspect.isawaitable(result):
            await result


class RedisProgressSink(ProgressSink):
    """Stores the latest progress of a batch in a Redis hash for polling UIs.

    Hash fields: current, total, percentage, message, updated_at. The key
    expires after ttl_seconds; each update refreshes it.
    """

    def __init__(self, redis: Redis, batch_id: str, ttl_seconds: Optional[int] = None):
        self.redis = redis
        self.batch_id = batch_id
        self.ttl_seconds = ttl_seconds or import_settings.progress_ttl_seconds

    @property
    def key(self) -> str:
        return get_progress_key(self.batch_id)

    async def publish(self, event: ProgressEvent) -> None:
        log = logger.bind(batch_id=self.batch_id, current=event.current, total=event.total)
        mapping = {
            "current": str(event.current),
            "total": str(event.total),
            "percentage": str(event.percentage),
            "message": event.message or "",
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self.redis.hset(self.key, mapping=mapping)
            await self.redis.expire(self.key, self.ttl_seconds)
            log.debug("import_progress_updated", percentage=event.percentage)
        except RedisError as e:
            log.error("update_import_progress_failed", error=str(e))


class ProgressReporter:
    """Validates and forwards progress for one batch.

    Events are monotonic: current never decreases and never exceeds total.
    A failing sink is logged and otherwise ignored.
    """

    def __init__(self, sink: Optional[ProgressSink], total: int, batch_id: Optional[str] = None):
        if total < 0:
            raise ValueError("total must be >= 0")
        self.sink = sink or NullProgressSink()
        self.total = total
        self.batch_id = batch_id
        self.events: List[ProgressEvent] = []

    @property
    def current(self) -> int:
        return self.events[-1].current if self.events else 0

    async def report(self, current: int, message: Optional[str] = None) -> ProgressEvent:
        """Emit a progress event.

        Raises:
            ValueError: If current goes backwards or past total
        """
        if current < self.current or current > self.total:
            raise ValueError(
                f"Progress must stay within [{self.current}, {self.total}], got {current}"
            )
        event = ProgressEvent(current=current, total=self.total, message=message)
        self.events.append(event)
        try:
            await self.sink.publish(event)
        except Exception as e:
            logger.warning(
                "progress_publish_failed",
                batch_id=self.batch_id,
                current=current,
                error=str(e),
                error_type=type(e).__name__,
            )
        return event

    async def finish(self, message: Optional[str] = None) -> ProgressEvent:
        """Emit the closing current == total event."""
        return await self.report(self.total, message)

