"""
SQLAlchemy-backed application store used by the workflow engine.

Every public method opens its own short-lived session, so the engine never
holds a connection between its read and its guarded write. The transition
write (status swap + audit append) runs in a single transaction.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recruitflow.models.actor import ActorRole
from recruitflow.models.application import Application, ApplicationStatus
from recruitflow.models.audit_entry import AuditEntry
from recruitflow.repositories.application_repository import ApplicationRepository
from recruitflow.repositories.audit_repository import AuditRepository

logger = logging.getLogger(__name__)


class ApplicationStore:
    """
    Read / compare-and-swap access to applications and their audit trail.

    Example:
        store = ApplicationStore(AsyncSessionLocal)
        application = await store.get(application_id)
        entry = await store.commit_transition(
            application_id, application.version,
            ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW, entry_fields
        )
        if entry is None:
            ...  # someone else moved the application first
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        application_repo: Optional[ApplicationRepository] = None,
        audit_repo: Optional[AuditRepository] = None,
    ):
        self.session_factory = session_factory
        self.application_repo = application_repo or ApplicationRepository()
        self.audit_repo = audit_repo or AuditRepository()

    async def get(self, application_id: UUID) -> Optional[Application]:
        async with self.session_factory() as db:
            return await self.application_repo.get(db, application_id)

    async def create(
        self,
        job_id: UUID,
        applicant_id: UUID,
        application_id: Optional[UUID] = None,
    ) -> Application:
        """
        Register a freshly submitted application in the initial status.

        Submission itself belongs to the surrounding application; this is the
        hook it calls once the candidate's documents are stored.
        """
        async with self.session_factory() as db:
            async with db.begin():
                application = await self.application_repo.create(db, {
                    "id": application_id or uuid.uuid4(),
                    "job_id": job_id,
                    "applicant_id": applicant_id,
                    "status": ApplicationStatus.PENDING,
                    "version": 0,
                })
            logger.info(f"Registered application {application.id} for job {job_id}")
            return application

    async def list_visible(
        self,
        role: ActorRole,
        identity: str,
        status: Optional[ApplicationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Application]:
        """
        Applications a dashboard may list: every application for HR and
        ADMIN, only the actor's own for an APPLICANT.
        """
        applicant_id = None
        if role == ActorRole.APPLICANT:
            try:
                applicant_id = UUID(identity)
            except ValueError:
                return []
        async with self.session_factory() as db:
            return await self.application_repo.list_visible(
                db, applicant_id=applicant_id, status=status, skip=skip, limit=limit
            )

    async def commit_transition(
        self,
        application_id: UUID,
        expected_version: int,
        from_status: ApplicationStatus,
        to_status: ApplicationStatus,
        entry: dict,
    ) -> Optional[AuditEntry]:
        """
        Swap status/version and append the audit entry as one unit.

        Args:
            application_id: UUID of the application
            expected_version: Version the engine read
            from_status: Status the engine read
            to_status: Target status
            entry: Audit entry field values (id, sequence, action, actor...)

        Returns:
            The persisted AuditEntry, or None if the application moved on
            before the swap (nothing is written in that case)
        """
        changed_at: datetime = entry["created_at"]
        async with self.session_factory() as db:
            try:
                async with db.begin():
                    swapped = await self.application_repo.compare_and_swap_status(
                        db, application_id, expected_version, from_status, to_status, changed_at
                    )
                    if not swapped:
                        return None
                    return await self.audit_repo.append(db, entry)
            except IntegrityError:
                # Another writer already produced this sequence number
                logger.warning(
                    f"Audit sequence {entry.get('sequence')} already exists for "
                    f"application {application_id}; transition not applied"
                )
                return None

    async def history(
        self,
        application_id: UUID,
        after_sequence: int = 0,
        limit: Optional[int] = None,
    ) -> list[AuditEntry]:
        async with self.session_factory() as db:
            return await self.audit_repo.list_for_application(
                db, application_id, after_sequence=after_sequence, limit=limit
            )

    async def latest_entry(self, application_id: UUID) -> Optional[AuditEntry]:
        async with self.session_factory() as db:
            return await self.audit_repo.latest_for_application(db, application_id)
