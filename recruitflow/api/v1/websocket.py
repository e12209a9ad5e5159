"""
WebSocket API endpoint for real-time application status updates.

Dashboards open one socket per session and receive an
``application_status_changed`` message for every committed transition they
are allowed to see. Nothing is replayed: on (re)connect the dashboard must
refetch current state over HTTP.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from typing import Optional
from uuid import UUID
import asyncio
import logging
import uuid

from recruitflow.api.deps import get_broadcaster, get_store
from recruitflow.core.broadcaster import EventFilter, SessionInUse, UpdateBroadcaster
from recruitflow.core.config import settings
from recruitflow.core.security import actor_from_token
from recruitflow.models.actor import Actor, ActorRole
from recruitflow.repositories.application_store import ApplicationStore

logger = logging.getLogger(__name__)

router = APIRouter()


class SubscriptionRejected(Exception):
    """The authenticate message asked for something the actor may not see."""


async def build_event_filter(
    actor: Actor,
    application_ids: Optional[list],
    store: ApplicationStore,
) -> EventFilter:
    """
    Turn the authenticate message's scope into an EventFilter.

    Without ``application_ids`` the subscription is role-scoped. An applicant
    naming explicit ids may only name its own applications.

    Raises:
        SubscriptionRejected: Malformed ids, or ids the applicant does not own
    """
    if not application_ids:
        return EventFilter.for_role(actor.role, actor.identity)

    if not isinstance(application_ids, list):
        raise SubscriptionRejected("application_ids must be a list")

    try:
        ids = [UUID(str(value)) for value in application_ids]
    except ValueError:
        raise SubscriptionRejected("application_ids must contain valid UUIDs")

    if actor.role == ActorRole.APPLICANT:
        for application_id in ids:
            application = await store.get(application_id)
            if application is None or str(application.applicant_id) != actor.identity:
                raise SubscriptionRejected(f"Application {application_id} not found")

    return EventFilter.for_applications(ids)


async def _reject(websocket: WebSocket, message: str):
    await websocket.send_json({"type": "error", "message": message})
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    store: ApplicationStore = Depends(get_store),
    event_broadcaster: UpdateBroadcaster = Depends(get_broadcaster),
):
    """
    WebSocket endpoint for application status updates.

    Protocol:
    1. Client connects
    2. Client sends {"type": "authenticate", "token": ..., "session_id"?, "application_ids"?}
    3. Server responds with authenticated message or error
    4. Server pushes application_status_changed events as transitions commit
    5. Server sends periodic ping messages, client may answer with pong

    Reusing a session_id replaces that session's previous subscription when
    the same identity owns it; any other identity is rejected with 1008.
    """
    subscription = None
    session_id = None
    tasks = []

    try:
        await websocket.accept()

        # Wait for authentication message (with timeout)
        try:
            auth_message = await asyncio.wait_for(
                websocket.receive_json(),
                timeout=settings.websocket_auth_timeout
            )
        except asyncio.TimeoutError:
            await _reject(websocket, "Authentication timeout")
            return

        if not isinstance(auth_message, dict) or auth_message.get("type") != "authenticate":
            await _reject(websocket, "First message must be authentication")
            return

        token = auth_message.get("token")
        if not token:
            await _reject(websocket, "Token is required")
            return

        actor = actor_from_token(token)
        if actor is None:
            await _reject(websocket, "Invalid or expired token")
            return

        try:
            event_filter = await build_event_filter(actor, auth_message.get("application_ids"), store)
        except SubscriptionRejected as e:
            await _reject(websocket, str(e))
            return

        requested_session = str(auth_message.get("session_id") or uuid.uuid4())
        try:
            subscription = event_broadcaster.subscribe(requested_session, event_filter, owner=actor.identity)
        except SessionInUse:
            logger.warning(
                f"WebSocket session {requested_session} already held by another identity; "
                f"rejecting role={actor.role.value}"
            )
            await _reject(websocket, "Session id is already in use")
            return
        session_id = requested_session

        await websocket.send_json({
            "type": "authenticated",
            "session_id": session_id,
            "role": actor.role.value,
            "message": "Successfully authenticated"
        })

        logger.info(f"WebSocket authenticated: session={session_id} role={actor.role.value}")

        tasks = [
            asyncio.create_task(event_broadcaster.deliver(subscription, websocket.send_json)),
            asyncio.create_task(receive_messages(websocket, session_id)),
            asyncio.create_task(send_heartbeat(websocket, settings.websocket_heartbeat_interval)),
        ]
        # Ends when the client leaves or the broadcaster drops the session
        await asyncio.wait(tasks[:2], return_when=asyncio.FIRST_COMPLETED)

        if tasks[0].done():
            logger.info(f"WebSocket session {session_id} dropped by broadcaster; closing")
            try:
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            except RuntimeError:
                # Socket already closed by the client
                pass

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected during handshake: session={session_id}")

    finally:
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if subscription is not None:
            event_broadcaster.unsubscribe(session_id, subscription)


async def receive_messages(websocket: WebSocket, session_id: str):
    """Read client messages until the socket closes."""
    while True:
        try:
            message = await websocket.receive_json()
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: session={session_id}")
            return
        except ValueError:
            await websocket.send_json({
                "type": "error",
                "code": "INVALID_MESSAGE_FORMAT",
                "message": "Message must be valid JSON"
            })
            continue

        if isinstance(message, dict) and message.get("type") == "pong":
            logger.debug(f"Pong from session {session_id}")


async def send_heartbeat(websocket: WebSocket, interval: int = 30):
    """
    Send periodic ping messages to keep connection alive.

    Args:
        websocket: WebSocket connection
        interval: Seconds between pings
    """
    try:
        while True:
            await asyncio.sleep(interval)
            await websocket.send_json({"type": "ping"})
    except asyncio.CancelledError:
        raise
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug(f"Heartbeat stopped: {e}")
