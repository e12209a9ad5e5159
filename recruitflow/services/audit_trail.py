"""
Audit trail service.

Entries are written only by the workflow engine, inside the same store
transaction that swaps the application status. This module is the read side:
ordered history for "recent activity" panels, a lazy paged iterator, and a
replay check that folds the trail through the status catalog.
"""

from __future__ import annotations
from typing import AsyncIterator, Iterable, Optional
from uuid import UUID
import logging

from recruitflow.core.exceptions import ApplicationNotFound, AuditIntegrityError
from recruitflow.models.application import ApplicationStatus
from recruitflow.models.audit_entry import AuditEntry
from recruitflow.utils.status_catalog import StatusCatalog, parse_action, status_catalog

logger = logging.getLogger(__name__)


def replay(
    entries: Iterable[AuditEntry],
    catalog: Optional[StatusCatalog] = None,
) -> ApplicationStatus:
    """
    Fold audit entries from the initial status and return the status reached.

    Raises:
        AuditIntegrityError: If an entry does not start where the previous one
            ended, or its (from_status, action) pair is not in the catalog
    """
    catalog = catalog or status_catalog
    current = catalog.initial_state
    expected_sequence = 1
    for entry in entries:
        if entry.sequence != expected_sequence:
            raise AuditIntegrityError(
                f"Audit entry {entry.id} has sequence {entry.sequence}, expected {expected_sequence}"
            )
        if entry.from_status != current:
            raise AuditIntegrityError(
                f"Audit entry {entry.id} starts at {entry.from_status.value} "
                f"but the trail is at {current.value}"
            )
        action = parse_action(entry.action)
        rule = catalog.rule_for(current, action) if action else None
        if rule is None or rule.to_status != entry.to_status:
            raise AuditIntegrityError(
                f"Audit entry {entry.id} records {entry.action} "
                f"{entry.from_status.value} -> {entry.to_status.value}, which the catalog does not allow"
            )
        current = entry.to_status
        expected_sequence += 1
    return current


class AuditTrail:
    """Read access to per-application audit history."""

    def __init__(self, store, catalog: Optional[StatusCatalog] = None):
        self.store = store
        self.catalog = catalog or status_catalog

    async def history(self, application_id: UUID) -> list[AuditEntry]:
        """All entries for an application, oldest first."""
        return await self.store.history(application_id)

    async def iter_history(
        self, application_id: UUID, batch_size: int = 50
    ) -> AsyncIterator[AuditEntry]:
        """
        Lazily page through an application's entries, oldest first.

        Each call starts a fresh iteration from the first entry; iteration ends
        at the last entry committed when the final page was read.

        Raises:
            ValueError: If batch_size is smaller than 1
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        after = 0
        while True:
            page = await self.store.history(
                application_id, after_sequence=after, limit=batch_size
            )
            for entry in page:
                yield entry
            if len(page) < batch_size:
                return
            after = page[-1].sequence

    async def verify(self, application_id: UUID) -> ApplicationStatus:
        """
        Replay the trail and check it lands on the stored status.

        Returns:
            The verified current status

        Raises:
            ApplicationNotFound: If the application does not exist
            AuditIntegrityError: If the trail is broken or disagrees with the record
        """
        application = await self.store.get(application_id)
        if application is None:
            raise ApplicationNotFound(application_id)

        entries = await self.store.history(application_id)
        reached = replay(entries, self.catalog)
        if reached != application.status or len(entries) != application.version:
            logger.error(
                f"Audit trail for application {application_id} replays to {reached.value} "
                f"({len(entries)} entries) but the record is {application.status.value} "
                f"at version {application.version}"
            )
            raise AuditIntegrityError(
                f"Audit trail for application {application_id} does not match its current status"
            )
        return reached
