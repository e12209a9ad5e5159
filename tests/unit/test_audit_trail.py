"""
Unit tests for the audit trail: replay, verify and paged iteration.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from fakes import InMemoryApplicationStore
from recruitflow.core.exceptions import ApplicationNotFound, AuditIntegrityError
from recruitflow.models.actor import Actor, ActorRole
from recruitflow.models.application import ApplicationStatus
from recruitflow.models.audit_entry import AuditEntry
from recruitflow.services.audit_trail import AuditTrail, replay
from recruitflow.services.workflow_service import WorkflowService

S = ApplicationStatus

HR = Actor(identity="hr-1", role=ActorRole.HR)
ADMIN = Actor(identity="admin-1", role=ActorRole.ADMIN)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def _make_entry(sequence: int, from_status, to_status, action: str) -> AuditEntry:
    return AuditEntry(
        id=uuid.uuid4(),
        application_id=uuid.uuid4(),
        sequence=sequence,
        from_status=from_status,
        to_status=to_status,
        action=action,
        performed_by_role=ActorRole.HR,
        performed_by_id="hr-1",
        created_at=datetime.now(timezone.utc),
    )


async def _hired_application(store: InMemoryApplicationStore):
    service = WorkflowService(store, publisher=None)
    application = store.seed()
    for action, actor in [
        ("UNDER_REVIEW", HR),
        ("SCHEDULE_INTERVIEW", HR),
        ("COMPLETE_INTERVIEW", HR),
        ("ACCEPT", HR),
        ("HIRE", ADMIN),
    ]:
        await service.apply_transition(application.id, action, actor)
    return application


# ---------------------------------------------------------------------------
# replay
# ---------------------------------------------------------------------------
class TestReplay:
    def test_empty_trail_is_initial_status(self):
        assert replay([]) == S.PENDING

    def test_rejection_path(self):
        entries = [
            _make_entry(1, S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW"),
            _make_entry(2, S.UNDER_REVIEW, S.REJECTED, "REJECT"),
        ]
        assert replay(entries) == S.REJECTED

    async def test_replay_matches_engine_history(self):
        store = InMemoryApplicationStore()
        application = await _hired_application(store)

        assert replay(await store.history(application.id)) == S.HIRED

    def test_gap_in_sequence(self):
        entries = [
            _make_entry(1, S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW"),
            _make_entry(3, S.UNDER_REVIEW, S.INTERVIEW_SCHEDULED, "SCHEDULE_INTERVIEW"),
        ]
        with pytest.raises(AuditIntegrityError, match="expected 2"):
            replay(entries)

    def test_broken_chain(self):
        entries = [
            _make_entry(1, S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW"),
            _make_entry(2, S.INTERVIEW_SCHEDULED, S.INTERVIEW_COMPLETED, "COMPLETE_INTERVIEW"),
        ]
        with pytest.raises(AuditIntegrityError, match="starts at INTERVIEW_SCHEDULED"):
            replay(entries)

    def test_move_not_in_catalog(self):
        entries = [_make_entry(1, S.PENDING, S.ACCEPTED, "ACCEPT")]
        with pytest.raises(AuditIntegrityError, match="does not allow"):
            replay(entries)

    def test_action_recorded_with_wrong_target(self):
        entries = [_make_entry(1, S.PENDING, S.HIRED, "UNDER_REVIEW")]
        with pytest.raises(AuditIntegrityError):
            replay(entries)


# ---------------------------------------------------------------------------
# AuditTrail
# ---------------------------------------------------------------------------
class TestAuditTrail:
    async def test_history_is_ordered(self):
        store = InMemoryApplicationStore()
        application = await _hired_application(store)
        trail = AuditTrail(store)

        entries = await trail.history(application.id)
        assert [e.sequence for e in entries] == [1, 2, 3, 4, 5]
        assert entries[-1].to_status == S.HIRED

    async def test_verify_returns_current_status(self):
        store = InMemoryApplicationStore()
        application = await _hired_application(store)

        assert await AuditTrail(store).verify(application.id) == S.HIRED

    async def test_verify_fresh_application(self):
        store = InMemoryApplicationStore()
        application = store.seed()

        assert await AuditTrail(store).verify(application.id) == S.PENDING

    async def test_verify_detects_status_drift(self):
        store = InMemoryApplicationStore()
        application = await _hired_application(store)
        store.set_status(application.id, S.REJECTED)

        with pytest.raises(AuditIntegrityError):
            await AuditTrail(store).verify(application.id)

    async def test_verify_unknown_application(self):
        with pytest.raises(ApplicationNotFound):
            await AuditTrail(InMemoryApplicationStore()).verify(uuid.uuid4())

    async def test_iter_history_pages_through_everything(self):
        store = InMemoryApplicationStore()
        application = await _hired_application(store)
        trail = AuditTrail(store)

        sequences = [entry.sequence async for entry in trail.iter_history(application.id, batch_size=2)]
        assert sequences == [1, 2, 3, 4, 5]

    async def test_iter_history_is_restartable(self):
        store = InMemoryApplicationStore()
        application = await _hired_application(store)
        trail = AuditTrail(store)

        first = [entry.id async for entry in trail.iter_history(application.id, batch_size=5)]
        second = [entry.id async for entry in trail.iter_history(application.id, batch_size=3)]
        assert first == second
        assert len(first) == 5

    async def test_iter_history_empty(self):
        store = InMemoryApplicationStore()
        application = store.seed()

        assert [e async for e in AuditTrail(store).iter_history(application.id)] == []

    @pytest.mark.parametrize("batch_size", [0, -3])
    async def test_iter_history_rejects_non_positive_batch(self, batch_size):
        store = InMemoryApplicationStore()
        application = store.seed()

        with pytest.raises(ValueError):
            async for _ in AuditTrail(store).iter_history(application.id, batch_size=batch_size):
                pass
