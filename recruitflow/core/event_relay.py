"""
Redis pub/sub relay for change events.

With several API workers, a dashboard's websocket lives in one process while
the transition that concerns it may commit in another. The relay publishes
each ChangeEvent on a Redis channel and every worker's listener feeds what it
receives into its local UpdateBroadcaster.

Pub/sub keeps the broadcaster's at-most-once contract: a worker that is not
listening when an event is published simply misses it.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional
import asyncio
import logging

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from recruitflow.core.broadcaster import UpdateBroadcaster
from recruitflow.core.config import settings
from recruitflow.core.redis_client import get_redis
from recruitflow.schemas.events import ChangeEvent

logger = logging.getLogger(__name__)


class RedisEventRelay:
    """
    Publishes events to Redis and re-publishes received events locally.

    Example:
        relay = RedisEventRelay(broadcaster)
        await relay.start_listener()
        await relay.publish(event)   # reaches every worker's subscribers
        await relay.stop_listener()
    """

    def __init__(
        self,
        broadcaster: UpdateBroadcaster,
        redis_factory: Callable[[], Awaitable[Redis]] = get_redis,
        channel: Optional[str] = None,
        reconnect_delay: float = 1.0,
    ):
        self.broadcaster = broadcaster
        self.redis_factory = redis_factory
        self.channel = channel or settings.broadcast_channel
        self.reconnect_delay = reconnect_delay
        self._listener_task: Optional[asyncio.Task] = None
        self._ready = asyncio.Event()

    async def publish(self, event: ChangeEvent) -> int:
        """
        Send an event to every worker.

        Returns:
            Number of Redis subscribers (listening workers) that received it
        """
        redis = await self.redis_factory()
        receivers = await redis.publish(self.channel, event.model_dump_json())
        logger.debug(
            f"[EventRelay] Published event for application {event.application_id} "
            f"to {receivers} worker(s)"
        )
        return receivers

    async def start_listener(self) -> None:
        if self._listener_task is not None and not self._listener_task.done():
            return
        self._ready.clear()
        self._listener_task = asyncio.create_task(self._listen())
        logger.info(f"[EventRelay] Listening on channel {self.channel}")

    async def wait_until_listening(self, timeout: float = 5.0) -> None:
        await asyncio.wait_for(self._ready.wait(), timeout=timeout)

    async def stop_listener(self) -> None:
        task = self._listener_task
        self._listener_task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"[EventRelay] Stopped listening on channel {self.channel}")

    async def _listen(self) -> None:
        while True:
            pubsub = None
            try:
                redis = await self.redis_factory()
                pubsub = redis.pubsub()
                await pubsub.subscribe(self.channel)
                self._ready.set()
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    await self._dispatch(message.get("data"))
            except asyncio.CancelledError:
                raise
            except (RedisError, OSError) as e:
                self._ready.clear()
                logger.error(
                    f"[EventRelay] Lost connection to channel {self.channel}: {e}; "
                    f"retrying in {self.reconnect_delay}s"
                )
                await asyncio.sleep(self.reconnect_delay)
            finally:
                if pubsub is not None:
                    try:
                        await pubsub.aclose()
                    except RedisError as e:
                        logger.debug(f"[EventRelay] Error closing pubsub: {e}")

    async def _dispatch(self, data) -> None:
        try:
            event = ChangeEvent.model_validate_json(data)
        except ValidationError as e:
            logger.warning(f"[EventRelay] Ignoring malformed event on {self.channel}: {e}")
            return
        await self.broadcaster.publish(event)
