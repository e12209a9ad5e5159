"""
Audit repository: append-only access to application_audit_entries.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from recruitflow.models.audit_entry import AuditEntry
from recruitflow.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class AuditRepository(BaseRepository[AuditEntry]):
    """Appends and reads audit entries. There is no update or delete."""

    def __init__(self):
        super().__init__(AuditEntry)

    async def append(self, db: AsyncSession, entry: dict) -> AuditEntry:
        """
        Insert one audit entry inside the caller's transaction.

        Raises:
            IntegrityError: If an entry with the same (application_id, sequence) exists
        """
        return await self.create(db, entry)

    async def list_for_application(
        self,
        db: AsyncSession,
        application_id: UUID,
        after_sequence: int = 0,
        limit: Optional[int] = None,
    ) -> list[AuditEntry]:
        """
        Entries for one application in commit order.

        Args:
            db: Active database session
            application_id: UUID of the application
            after_sequence: Only return entries with a greater sequence
            limit: Maximum number of entries (None for all)

        Returns:
            Entries ordered by sequence ascending
        """
        try:
            stmt = (
                select(AuditEntry)
                .where(
                    AuditEntry.application_id == application_id,
                    AuditEntry.sequence > after_sequence,
                )
                .order_by(AuditEntry.sequence.asc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching audit entries for application {application_id}: {e}")
            raise

    async def latest_for_application(
        self, db: AsyncSession, application_id: UUID
    ) -> Optional[AuditEntry]:
        try:
            stmt = (
                select(AuditEntry)
                .where(AuditEntry.application_id == application_id)
                .order_by(AuditEntry.sequence.desc())
                .limit(1)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching latest audit entry for application {application_id}: {e}")
            raise
