"""
Integration tests for the SQLAlchemy ApplicationStore against SQLite.

Covers the guarded status swap, the single-transaction audit append, and
the workflow engine running end to end on real tables.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from recruitflow.core.exceptions import StaleState
from recruitflow.models.actor import Actor, ActorRole
from recruitflow.models.application import ApplicationStatus
from recruitflow.repositories.application_store import ApplicationStore
from recruitflow.repositories.audit_repository import AuditRepository
from recruitflow.services.audit_trail import AuditTrail
from recruitflow.services.workflow_service import WorkflowService

S = ApplicationStatus


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _entry_fields(application_id: uuid.UUID, sequence: int, from_status, to_status, action: str) -> dict:
    return {
        "id": uuid.uuid4(),
        "application_id": application_id,
        "sequence": sequence,
        "from_status": from_status,
        "to_status": to_status,
        "action": action,
        "performed_by_role": ActorRole.HR,
        "performed_by_id": "hr-1",
        "performed_by_name": "Harper Recruiter",
        "note": None,
        "created_at": datetime.now(timezone.utc),
    }


# ---------------------------------------------------------------------------
# create / get
# ---------------------------------------------------------------------------
class TestCreateAndGet:
    async def test_new_application_starts_pending(self, store: ApplicationStore, applicant_id):
        job_id = uuid.uuid4()
        created = await store.create(job_id=job_id, applicant_id=applicant_id)

        loaded = await store.get(created.id)
        assert loaded is not None
        assert loaded.status == S.PENDING
        assert loaded.version == 0
        assert loaded.job_id == job_id
        assert loaded.applicant_id == applicant_id
        assert loaded.updated_at is None

    async def test_get_missing(self, store: ApplicationStore):
        assert await store.get(uuid.uuid4()) is None

    async def test_latest_entry_of_fresh_application(self, store: ApplicationStore, application):
        assert await store.latest_entry(application.id) is None

    async def test_list_visible_scopes_by_role(self, store: ApplicationStore, applicant_id, application):
        other = await store.create(job_id=uuid.uuid4(), applicant_id=uuid.uuid4())

        staff = await store.list_visible(ActorRole.ADMIN, "admin-1")
        own = await store.list_visible(ActorRole.APPLICANT, str(applicant_id))
        malformed = await store.list_visible(ActorRole.APPLICANT, "not-a-uuid")

        assert {a.id for a in staff} == {application.id, other.id}
        assert [a.id for a in own] == [application.id]
        assert malformed == []


# ---------------------------------------------------------------------------
# commit_transition
# ---------------------------------------------------------------------------
class TestCommitTransition:
    async def test_swap_and_append(self, store: ApplicationStore, application):
        fields = _entry_fields(application.id, 1, S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW")

        entry = await store.commit_transition(application.id, 0, S.PENDING, S.UNDER_REVIEW, fields)

        assert entry is not None
        assert entry.id == fields["id"]
        assert entry.sequence == 1

        loaded = await store.get(application.id)
        assert loaded.status == S.UNDER_REVIEW
        assert loaded.version == 1
        assert loaded.updated_at is not None

        history = await store.history(application.id)
        assert [e.id for e in history] == [fields["id"]]

    async def test_stale_version_writes_nothing(self, store: ApplicationStore, application):
        first = _entry_fields(application.id, 1, S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW")
        await store.commit_transition(application.id, 0, S.PENDING, S.UNDER_REVIEW, first)

        second = _entry_fields(application.id, 1, S.PENDING, S.REJECTED, "REJECT")
        entry = await store.commit_transition(application.id, 0, S.PENDING, S.REJECTED, second)

        assert entry is None
        loaded = await store.get(application.id)
        assert loaded.status == S.UNDER_REVIEW
        assert loaded.version == 1
        assert len(await store.history(application.id)) == 1

    async def test_stale_status_writes_nothing(self, store: ApplicationStore, application):
        fields = _entry_fields(application.id, 1, S.UNDER_REVIEW, S.INTERVIEW_SCHEDULED, "SCHEDULE_INTERVIEW")

        entry = await store.commit_transition(
            application.id, 0, S.UNDER_REVIEW, S.INTERVIEW_SCHEDULED, fields
        )

        assert entry is None
        assert (await store.get(application.id)).status == S.PENDING

    async def test_duplicate_sequence_rolls_back_status(self, store: ApplicationStore, session_factory, application):
        # An orphan entry already claims sequence 1
        async with session_factory() as db:
            async with db.begin():
                await AuditRepository().append(
                    db, _entry_fields(application.id, 1, S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW")
                )

        fields = _entry_fields(application.id, 1, S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW")
        entry = await store.commit_transition(application.id, 0, S.PENDING, S.UNDER_REVIEW, fields)

        assert entry is None
        loaded = await store.get(application.id)
        assert loaded.status == S.PENDING
        assert loaded.version == 0

    async def test_history_paging(self, store: ApplicationStore, application):
        steps = [
            (S.PENDING, S.UNDER_REVIEW, "UNDER_REVIEW"),
            (S.UNDER_REVIEW, S.INTERVIEW_SCHEDULED, "SCHEDULE_INTERVIEW"),
            (S.INTERVIEW_SCHEDULED, S.INTERVIEW_COMPLETED, "COMPLETE_INTERVIEW"),
        ]
        for version, (from_status, to_status, action) in enumerate(steps):
            fields = _entry_fields(application.id, version + 1, from_status, to_status, action)
            assert await store.commit_transition(application.id, version, from_status, to_status, fields)

        page = await store.history(application.id, after_sequence=1, limit=1)
        assert [e.sequence for e in page] == [2]
        assert (await store.latest_entry(application.id)).sequence == 3


# ---------------------------------------------------------------------------
# Engine on the real store
# ---------------------------------------------------------------------------
class TestWorkflowOnDatabase:
    async def test_hiring_path_verifies(self, store: ApplicationStore, application, hr_actor, admin_actor):
        service = WorkflowService(store, publisher=None)
        for action, actor in [
            ("UNDER_REVIEW", hr_actor),
            ("SCHEDULE_INTERVIEW", hr_actor),
            ("COMPLETE_INTERVIEW", hr_actor),
            ("ACCEPT", hr_actor),
            ("HIRE", admin_actor),
        ]:
            await service.apply_transition(application.id, action, actor)

        assert await AuditTrail(store).verify(application.id) == S.HIRED
        history = await store.history(application.id)
        assert [e.performed_by_role for e in history][-1] == ActorRole.ADMIN

    async def test_stale_request_against_database(self, store: ApplicationStore, application, hr_actor):
        service = WorkflowService(store, publisher=None)
        await service.apply_transition(application.id, "UNDER_REVIEW", hr_actor, expected_version=0)

        with pytest.raises(StaleState):
            await service.apply_transition(
                application.id, "REJECT", hr_actor, note="Role closed", expected_version=0
            )
        assert len(await store.history(application.id)) == 1

    async def test_rejection_note_is_stored(self, store: ApplicationStore, application):
        service = WorkflowService(store, publisher=None)
        actor = Actor(identity="hr-2", role=ActorRole.HR)

        await service.apply_transition(application.id, "REJECT", actor, note="Missing work permit")

        (entry,) = await store.history(application.id)
        assert entry.note == "Missing work permit"
        assert entry.to_status == S.REJECTED
