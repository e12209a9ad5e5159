from .transition_authorizer import TransitionAuthorizer, Allow, Deny, DenialReason
from .workflow_service import WorkflowService, TransitionResult
from .audit_trail import AuditTrail, replay

__all__ = [
    "TransitionAuthorizer",
    "Allow",
    "Deny",
    "DenialReason",
    "WorkflowService",
    "TransitionResult",
    "AuditTrail",
    "replay",
]
