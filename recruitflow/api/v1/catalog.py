from fastapi import APIRouter, Depends

from recruitflow.api.deps import get_current_actor
from recruitflow.models.actor import Actor
from recruitflow.models.application import ApplicationStatus
from recruitflow.schemas.application import CatalogResponse, CatalogRule, CatalogStatus
from recruitflow.utils.status_catalog import status_catalog

router = APIRouter()


@router.get("", response_model=CatalogResponse)
async def get_catalog(current_actor: Actor = Depends(get_current_actor)):
    """Full transition table plus display metadata for every status"""
    return CatalogResponse(
        initial_status=status_catalog.initial_state,
        statuses=[
            CatalogStatus(
                status=state,
                label=status_catalog.display(state).label,
                color=status_catalog.display(state).color,
                is_terminal=status_catalog.is_terminal(state),
            )
            for state in ApplicationStatus
            if state in status_catalog.all_states()
        ],
        rules=[
            CatalogRule(
                from_status=rule.from_status,
                to_status=rule.to_status,
                action=rule.action.value,
                allowed_roles=sorted(rule.allowed_roles, key=lambda role: role.value),
                requires_note=rule.requires_note,
                requires_confirmation=rule.requires_confirmation,
                description=rule.description,
            )
            for rule in status_catalog.rules()
        ],
    )
