from .application import (
    TransitionRequest,
    TransitionResponse,
    ApplicationState,
    ApplicationStateList,
    AvailableTransition,
    AvailableTransitionsResponse,
    CatalogRule,
    CatalogStatus,
    CatalogResponse,
)
from .audit import AuditEntryRead, ApplicationHistory
from .events import ChangeEvent

__all__ = [
    "TransitionRequest", "TransitionResponse", "ApplicationState", "ApplicationStateList",
    "AvailableTransition", "AvailableTransitionsResponse",
    "CatalogRule", "CatalogStatus", "CatalogResponse",
    "AuditEntryRead", "ApplicationHistory",
    "ChangeEvent",
]
