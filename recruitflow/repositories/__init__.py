# Repositories package
from .base import BaseRepository
from .application_repository import ApplicationRepository
from .audit_repository import AuditRepository
from .application_store import ApplicationStore

__all__ = [
    "BaseRepository",
    "ApplicationRepository",
    "AuditRepository",
    "ApplicationStore",
]
