from fastapi import APIRouter, Depends, Query
from typing import Optional
import uuid

from recruitflow.api.deps import (
    get_audit_trail,
    get_current_actor,
    get_workflow_service,
    require_application_access,
)
from recruitflow.models.actor import Actor
from recruitflow.models.application import Application, ApplicationStatus
from recruitflow.schemas.application import (
    ApplicationState,
    ApplicationStateList,
    AvailableTransition,
    AvailableTransitionsResponse,
    TransitionRequest,
    TransitionResponse,
)
from recruitflow.schemas.audit import ApplicationHistory, AuditEntryRead
from recruitflow.services.audit_trail import AuditTrail
from recruitflow.services.workflow_service import WorkflowService

router = APIRouter()


def _to_state(application: Application, service: WorkflowService) -> ApplicationState:
    return ApplicationState(
        id=application.id,
        job_id=application.job_id,
        applicant_id=application.applicant_id,
        status=application.status,
        status_label=service.catalog.display(application.status).label,
        version=application.version,
        is_terminal=service.catalog.is_terminal(application.status),
        created_at=application.created_at,
        updated_at=application.updated_at,
    )


@router.get("", response_model=ApplicationStateList)
async def list_applications(
    status: Optional[ApplicationStatus] = Query(None, description="Only applications in this status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """
    List the applications the caller may see.

    HR and ADMIN get every application; an applicant gets only their own.
    Dashboards call this on (re)connect since status events are not replayed.
    """
    applications = await service.list_applications(current_actor, status=status, skip=skip, limit=limit)
    return ApplicationStateList(
        items=[_to_state(application, service) for application in applications],
        skip=skip,
        limit=limit,
    )


@router.get("/{application_id}", response_model=ApplicationState)
async def get_application(
    application_id: uuid.UUID,
    current_actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Get the current status and version of an application"""
    application = await service.get_application(application_id)
    require_application_access(current_actor, application)
    return _to_state(application, service)


@router.get("/{application_id}/transitions", response_model=AvailableTransitionsResponse)
async def get_available_transitions(
    application_id: uuid.UUID,
    current_actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """
    List the transitions the caller's role may invoke right now.

    Dashboards use this to render action buttons; an empty list means the
    application is terminal or the role has nothing to do here.
    """
    application, rules = await service.available_transitions(application_id, current_actor.role)
    require_application_access(current_actor, application)
    return AvailableTransitionsResponse(
        application_id=application.id,
        status=application.status,
        version=application.version,
        transitions=[
            AvailableTransition(
                action=rule.action.value,
                to_status=rule.to_status,
                description=rule.description,
                requires_note=rule.requires_note,
                requires_confirmation=rule.requires_confirmation,
                confirmation_message=rule.confirmation_message,
            )
            for rule in rules
        ],
    )


@router.post("/{application_id}/transitions", response_model=TransitionResponse)
async def apply_transition(
    application_id: uuid.UUID,
    request: TransitionRequest,
    current_actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """
    Move an application to its next status.

    Failures come back as ``{"detail", "code", "retryable", ...}`` via the
    workflow error handler registered in main.
    """
    result = await service.apply_transition(
        application_id,
        request.action,
        current_actor,
        note=request.note,
        expected_version=request.expected_version,
    )
    return TransitionResponse(
        application_id=result.application_id,
        from_status=result.from_status,
        status=result.to_status,
        version=result.version,
        audit_entry_id=result.audit_entry_id,
        applied=result.applied,
    )


@router.get("/{application_id}/history", response_model=ApplicationHistory)
async def get_application_history(
    application_id: uuid.UUID,
    current_actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service),
    audit_trail: AuditTrail = Depends(get_audit_trail),
):
    """Get the audit trail of an application, oldest entry first"""
    application = await service.get_application(application_id)
    require_application_access(current_actor, application)
    entries = await audit_trail.history(application_id)
    return ApplicationHistory(
        application_id=application.id,
        status=application.status,
        version=application.version,
        entries=[AuditEntryRead.model_validate(entry) for entry in entries],
    )
