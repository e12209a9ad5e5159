from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from recruitflow.models.actor import ActorRole
from recruitflow.models.application import ApplicationStatus


class TransitionRequest(BaseModel):
    """Body of POST /applications/{id}/transitions"""
    action: str = Field(..., min_length=1, max_length=50)
    note: Optional[str] = Field(default=None, max_length=5000)
    expected_version: Optional[int] = Field(default=None, ge=0)


class TransitionResponse(BaseModel):
    application_id: uuid.UUID
    from_status: ApplicationStatus
    status: ApplicationStatus
    version: int
    audit_entry_id: uuid.UUID
    applied: bool


class ApplicationState(BaseModel):
    """Current lifecycle state of one application"""
    id: uuid.UUID
    job_id: uuid.UUID
    applicant_id: uuid.UUID
    status: ApplicationStatus
    status_label: str
    version: int
    is_terminal: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AvailableTransition(BaseModel):
    """A transition the caller may invoke from the current status"""
    action: str
    to_status: ApplicationStatus
    description: str
    requires_note: bool
    requires_confirmation: bool
    confirmation_message: Optional[str] = None


class AvailableTransitionsResponse(BaseModel):
    application_id: uuid.UUID
    status: ApplicationStatus
    version: int
    transitions: List[AvailableTransition]


class CatalogRule(BaseModel):
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    action: str
    allowed_roles: List[ActorRole]
    requires_note: bool
    requires_confirmation: bool
    description: str


class CatalogStatus(BaseModel):
    status: ApplicationStatus
    label: str
    color: str
    is_terminal: bool


class CatalogResponse(BaseModel):
    initial_status: ApplicationStatus
    statuses: List[CatalogStatus]
    rules: List[CatalogRule]


class ApplicationStateList(BaseModel):
    """Applications visible to the caller, newest first"""
    items: List[ApplicationState]
    skip: int
    limit: int
