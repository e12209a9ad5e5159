"""
Typed failures raised by the workflow engine.

Each failure carries a stable ``ErrorCode`` so the dashboards can show a
specific corrective message ("refresh", "add a note", "not allowed") instead of
a generic failure toast.
"""

from enum import Enum
from typing import Optional
from uuid import UUID


class ErrorCode(str, Enum):
    """Structured error codes surfaced to API clients."""
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"
    NOTE_REQUIRED = "NOTE_REQUIRED"
    STALE_STATE = "STALE_STATE"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    AUDIT_INTEGRITY = "AUDIT_INTEGRITY"


class WorkflowError(Exception):
    """Base exception for workflow failures with structured error information."""

    code: ErrorCode = ErrorCode.INVALID_TRANSITION
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """
        Args:
            message: Human-readable error message
            original_error: The underlying exception if this wraps another error
        """
        self.message = message
        self.original_error = original_error
        super().__init__(message)

    def extra(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        """Convert the error to the JSON body returned by the API."""
        body = {
            "detail": self.message,
            "code": self.code.value,
            "retryable": self.retryable,
        }
        body.update(self.extra())
        return body


class ApplicationNotFound(WorkflowError):
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, application_id: UUID):
        self.application_id = application_id
        super().__init__(f"Application {application_id} not found")


class InvalidTransition(WorkflowError):
    """The requested action does not apply to the live current state."""

    code = ErrorCode.INVALID_TRANSITION
    status_code = 409
    retryable = True

    def __init__(self, message: str, current_status=None):
        self.current_status = current_status
        super().__init__(message)

    def extra(self) -> dict:
        if self.current_status is None:
            return {}
        return {"current_status": self.current_status.value}


class RoleNotPermitted(WorkflowError):
    code = ErrorCode.ROLE_NOT_PERMITTED
    status_code = 403


class NoteRequired(WorkflowError):
    code = ErrorCode.NOTE_REQUIRED
    status_code = 422
    retryable = True


class StaleState(WorkflowError):
    """The caller's view is older than the stored record; refetch before retrying."""

    code = ErrorCode.STALE_STATE
    status_code = 409
    retryable = True

    def __init__(self, message: str, current_status, current_version: int):
        self.current_status = current_status
        self.current_version = current_version
        super().__init__(message)

    def extra(self) -> dict:
        return {
            "current_status": self.current_status.value,
            "current_version": self.current_version,
        }


class TransientStoreError(WorkflowError):
    """The store timed out or dropped the connection; nothing was applied."""

    code = ErrorCode.STORE_UNAVAILABLE
    status_code = 503
    retryable = True


class AuditIntegrityError(WorkflowError):
    """Replaying an audit trail did not produce a valid path through the catalog."""

    code = ErrorCode.AUDIT_INTEGRITY
    status_code = 500


class CatalogConfigurationError(Exception):
    """Raised at startup when the transition table is malformed."""
