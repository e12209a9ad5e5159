from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from recruitflow.core.broadcaster import broadcaster
from recruitflow.core.config import settings
from recruitflow.core.database import AsyncSessionLocal
from recruitflow.core.event_relay import RedisEventRelay
from recruitflow.core.security import actor_from_token
from recruitflow.models.actor import Actor, ActorRole
from recruitflow.models.application import Application
from recruitflow.repositories.application_store import ApplicationStore
from recruitflow.services.audit_trail import AuditTrail
from recruitflow.services.workflow_service import WorkflowService

security = HTTPBearer()

# Shared per process; sessions are opened per store call
application_store = ApplicationStore(AsyncSessionLocal)

# With several workers, events go through Redis and come back to each
# worker's local broadcaster via the relay listener started in main.
event_relay = RedisEventRelay(broadcaster) if settings.broadcast_backend == "redis" else None


def get_event_publisher():
    return event_relay if event_relay is not None else broadcaster


def get_store() -> ApplicationStore:
    return application_store


def get_workflow_service(
    store: ApplicationStore = Depends(get_store),
    publisher=Depends(get_event_publisher),
) -> WorkflowService:
    return WorkflowService(store, publisher=publisher)


def get_audit_trail(store: ApplicationStore = Depends(get_store)) -> AuditTrail:
    return AuditTrail(store)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """Get the acting user from the bearer token"""
    actor = actor_from_token(credentials.credentials)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


def require_application_access(actor: Actor, application: Application):
    """Applicants may only look at their own applications"""
    if actor.role != ActorRole.APPLICANT:
        return
    if str(application.applicant_id) != actor.identity:
        # Same answer as a missing application
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Application {application.id} not found",
        )


def get_broadcaster():
    return broadcaster
