from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
import uuid

from recruitflow.models.actor import ActorRole
from recruitflow.models.application import ApplicationStatus


class AuditEntryRead(BaseModel):
    """One row of an application's "recent activity" panel"""
    id: uuid.UUID
    application_id: uuid.UUID
    sequence: int
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    action: str
    performed_by_role: ActorRole
    performed_by_id: str
    performed_by_name: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ApplicationHistory(BaseModel):
    application_id: uuid.UUID
    status: ApplicationStatus
    version: int
    entries: List[AuditEntryRead]
