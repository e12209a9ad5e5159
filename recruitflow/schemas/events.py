from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime
import uuid

from recruitflow.models.actor import ActorRole
from recruitflow.models.application import ApplicationStatus


class ChangeEvent(BaseModel):
    """
    Ephemeral notification of one committed transition.

    Built by the workflow engine right after commit, handed to the
    broadcaster, and dropped after delivery attempts. Never persisted.
    """
    type: Literal["application_status_changed"] = "application_status_changed"
    application_id: uuid.UUID
    old_status: ApplicationStatus
    new_status: ApplicationStatus
    action: str
    actor_role: ActorRole
    timestamp: datetime
    version: int
    audit_entry_id: uuid.UUID

    # Scope hints so role filters can be evaluated without a store lookup
    applicant_id: Optional[uuid.UUID] = None
    job_id: Optional[uuid.UUID] = None

    # Applicant-facing copy for toasts
    title: Optional[str] = None
    message: Optional[str] = None

    class Config:
        frozen = True

    def to_message(self) -> dict:
        """JSON-safe payload for websocket and pub/sub transports."""
        return self.model_dump(mode="json")
