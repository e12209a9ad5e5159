"""
Application repository for lifecycle status reads and compare-and-swap writes.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from recruitflow.models.application import Application, ApplicationStatus
from recruitflow.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ApplicationRepository(BaseRepository[Application]):
    """
    Repository for Application status and version.

    The only write this repository offers is a guarded swap: status and
    version change together, and only if neither moved since they were read.
    """

    def __init__(self):
        super().__init__(Application)

    async def compare_and_swap_status(
        self,
        db: AsyncSession,
        application_id: UUID,
        expected_version: int,
        from_status: ApplicationStatus,
        to_status: ApplicationStatus,
        changed_at: datetime,
    ) -> bool:
        """
        Move an application to a new status if it is still at the read version.

        Args:
            db: Active database session (caller owns the transaction)
            application_id: UUID of the application
            expected_version: Version observed when the status was read
            from_status: Status observed when the status was read
            to_status: Target status
            changed_at: Timestamp recorded as updated_at

        Returns:
            True if exactly one row was swapped, False if the record moved on

        Example:
            swapped = await repo.compare_and_swap_status(
                db, app_id, 2, ApplicationStatus.UNDER_REVIEW,
                ApplicationStatus.INTERVIEW_SCHEDULED, now
            )
        """
        try:
            stmt = (
                update(Application)
                .where(
                    Application.id == application_id,
                    Application.version == expected_version,
                    Application.status == from_status,
                )
                .values(
                    status=to_status,
                    version=Application.version + 1,
                    updated_at=changed_at,
                )
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(f"Error swapping status of application {application_id}: {e}")
            raise

    async def list_visible(
        self,
        db: AsyncSession,
        applicant_id: Optional[UUID] = None,
        status: Optional[ApplicationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Application]:
        """
        List applications newest first.

        Args:
            db: Active database session
            applicant_id: Restrict to one applicant's applications (None = all)
            status: Restrict to one status
            skip: Number of rows to skip
            limit: Maximum number of rows to return
        """
        try:
            stmt = select(Application)
            if applicant_id is not None:
                stmt = stmt.where(Application.applicant_id == applicant_id)
            if status is not None:
                stmt = stmt.where(Application.status == status)
            stmt = (
                stmt.order_by(Application.created_at.desc(), Application.id)
                .offset(skip)
                .limit(limit)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing applications: {e}")
            raise
