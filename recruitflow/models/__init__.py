from .actor import Actor, ActorRole
from .application import Application, ApplicationStatus
from .audit_entry import AuditEntry

__all__ = ["Actor", "ActorRole", "Application", "ApplicationStatus", "AuditEntry"]
