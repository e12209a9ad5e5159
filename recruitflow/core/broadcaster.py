"""
Update broadcaster for real-time application status changes.

Dashboards subscribe with a session id and a filter; the workflow engine
publishes one ChangeEvent per committed transition. Delivery is at-most-once
and nothing is retained: a session that subscribes after an event was
published never sees it and must refetch current state on (re)connect.

The broadcaster knows nothing about websockets. Each subscription owns a
bounded queue; a transport adapter drains it with ``deliver()`` and a send
callable (websocket.send_json, an SSE writer, a test list.append...).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, Optional
from uuid import UUID
import asyncio
import logging
import threading

from recruitflow.core.config import settings
from recruitflow.models.actor import ActorRole
from recruitflow.schemas.events import ChangeEvent
from recruitflow.utils.status_catalog import status_catalog

logger = logging.getLogger(__name__)

_CLOSED = object()


class SessionInUse(Exception):
    """The session id is registered to a different owner."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already in use")


@dataclass(frozen=True)
class EventFilter:
    """
    Which events a subscription receives.

    Either an explicit set of application ids, or a role scope: HR and ADMIN
    dashboards see every application, an applicant sees its own applications.
    """

    application_ids: Optional[frozenset[UUID]] = None
    role: Optional[ActorRole] = None
    identity: Optional[str] = None

    @classmethod
    def for_application(cls, application_id: UUID) -> "EventFilter":
        return cls(application_ids=frozenset({application_id}))

    @classmethod
    def for_applications(cls, application_ids: Iterable[UUID]) -> "EventFilter":
        return cls(application_ids=frozenset(application_ids))

    @classmethod
    def for_role(cls, role: ActorRole, identity: Optional[str] = None) -> "EventFilter":
        return cls(role=role, identity=identity)

    def matches(self, event: ChangeEvent) -> bool:
        if self.application_ids is not None:
            return event.application_id in self.application_ids
        if self.role in (ActorRole.HR, ActorRole.ADMIN):
            return True
        if self.role == ActorRole.APPLICANT:
            return (
                event.applicant_id is not None
                and self.identity is not None
                and str(event.applicant_id) == self.identity
            )
        return False


class Subscription:
    """
    One dashboard session's event stream.

    Iterate it (``async for event in subscription``) to receive events; the
    iteration ends once the subscription is closed.
    """

    def __init__(
        self,
        session_id: str,
        event_filter: EventFilter,
        queue_size: int,
        owner: Optional[str] = None,
    ):
        self.session_id = session_id
        self.filter = event_filter
        self.owner = owner
        self.created_at = datetime.now(timezone.utc)
        self.delivered = 0
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False
        # application_id -> highest version queued, so a status never goes backwards
        self._last_version: Dict[UUID, int] = {}

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: ChangeEvent) -> bool:
        """
        Queue an event without waiting.

        Returns:
            False if the queue is full (the subscriber is too slow), True otherwise
        """
        if self._closed:
            return True
        last = self._last_version.get(event.application_id)
        if last is not None and event.version <= last:
            logger.debug(
                f"[Broadcaster] Skipping out-of-order event v{event.version} for "
                f"application {event.application_id} on session {self.session_id}"
            )
            return True
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        if status_catalog.is_terminal(event.new_status):
            # Nothing follows a terminal status
            self._last_version.pop(event.application_id, None)
        else:
            self._last_version[event.application_id] = event.version
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Drop undelivered events so the close marker always fits
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> Optional[ChangeEvent]:
        """Next event, or None once the subscription is closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        self.delivered += 1
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


class UpdateBroadcaster:
    """
    Fan-out of ChangeEvents to subscribed dashboard sessions.

    The registry is guarded by a lock of its own; it is independent of any
    application state. Publishing never waits on a subscriber: a full queue
    gets the subscriber dropped instead.
    """

    def __init__(
        self,
        queue_size: Optional[int] = None,
        send_timeout: Optional[float] = None,
    ):
        self.queue_size = queue_size or settings.broadcast_queue_size
        self.send_timeout = send_timeout or settings.broadcast_send_timeout
        # session_id → Subscription
        self._subscriptions: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(
        self,
        session_id: str,
        event_filter: EventFilter,
        owner: Optional[str] = None,
    ) -> Subscription:
        """
        Register a session. An existing subscription with the same id and the
        same owner is closed and replaced.

        Raises:
            SessionInUse: The id is held by a subscription of another owner
        """
        subscription = Subscription(session_id, event_filter, self.queue_size, owner=owner)
        with self._lock:
            previous = self._subscriptions.get(session_id)
            if previous is not None and previous.owner != owner:
                raise SessionInUse(session_id)
            self._subscriptions[session_id] = subscription
            total = len(self._subscriptions)
        if previous is not None:
            previous.close()
            logger.info(f"[Broadcaster] Replaced subscription for session {session_id}")
        logger.info(f"[Broadcaster] Session {session_id} subscribed - total subscriptions: {total}")
        return subscription

    def unsubscribe(self, session_id: str, subscription: Optional[Subscription] = None) -> bool:
        """
        Remove a session and close its stream.

        Args:
            session_id: Session to remove
            subscription: If given, only remove when it is still the registered one

        Returns:
            True if a subscription was removed
        """
        with self._lock:
            current = self._subscriptions.get(session_id)
            if current is None or (subscription is not None and current is not subscription):
                return False
            del self._subscriptions[session_id]
            total = len(self._subscriptions)
        current.close()
        logger.info(f"[Broadcaster] Session {session_id} unsubscribed - total subscriptions: {total}")
        return True

    async def publish(self, event: ChangeEvent) -> int:
        """
        Queue an event for every matching subscription.

        Returns:
            Number of subscriptions the event was queued for
        """
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        queued = 0
        slow = []
        for subscription in subscriptions:
            if not subscription.filter.matches(event):
                continue
            if subscription.offer(event):
                queued += 1
            else:
                slow.append(subscription)

        for subscription in slow:
            logger.warning(
                f"[Broadcaster] Dropping slow session {subscription.session_id} "
                f"(queue full at {self.queue_size} events)"
            )
            self.unsubscribe(subscription.session_id, subscription)

        logger.debug(
            f"[Broadcaster] Event for application {event.application_id} "
            f"({event.old_status.value} -> {event.new_status.value}) queued for {queued} session(s)"
        )
        return queued

    async def deliver(
        self,
        subscription: Subscription,
        send: Callable[[dict], Awaitable[None]],
    ) -> None:
        """
        Drain a subscription into a transport until it closes or the transport fails.

        Each send is bounded by ``send_timeout``; a session that times out or
        errors is unsubscribed rather than allowed to hold up anything else.
        """
        try:
            async for event in subscription:
                try:
                    await asyncio.wait_for(send(event.to_message()), timeout=self.send_timeout)
                except asyncio.TimeoutError:
                    logger.warning(
                        f"[Broadcaster] Send to session {subscription.session_id} timed out "
                        f"after {self.send_timeout}s; dropping session"
                    )
                    break
                except Exception as e:
                    logger.error(
                        f"[Broadcaster] Error sending to session {subscription.session_id}: {e}",
                        exc_info=True,
                    )
                    break
        finally:
            self.unsubscribe(subscription.session_id, subscription)

    def get_subscription(self, session_id: str) -> Optional[Subscription]:
        with self._lock:
            return self._subscriptions.get(session_id)

    def get_connection_count(self) -> dict:
        """Get statistics about active subscriptions."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())
        by_scope = {"application": 0, "role": 0}
        for subscription in subscriptions:
            key = "application" if subscription.filter.application_ids is not None else "role"
            by_scope[key] += 1
        return {
            "total_subscriptions": len(subscriptions),
            "application_scoped": by_scope["application"],
            "role_scoped": by_scope["role"],
        }


# Global singleton instance
broadcaster = UpdateBroadcaster()
