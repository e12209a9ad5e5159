"""
Workflow service: the application lifecycle engine.

Accepts transition requests from request handlers, re-reads the live status,
asks the authorizer, and commits the status swap plus its audit entry as one
compare-and-swap unit in the store. After a commit it hands a ChangeEvent to
the publisher on a best-effort basis.

Many handlers call this concurrently. The engine holds no lock of its own; the
store's guarded write is the only serialization point, so for one application
at most one request can commit from a given version.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar, Union
from uuid import UUID
import asyncio
import uuid

import structlog
from sqlalchemy.exc import InterfaceError, OperationalError

from recruitflow.core.config import settings
from recruitflow.core.exceptions import (
    ApplicationNotFound,
    InvalidTransition,
    StaleState,
    TransientStoreError,
)
from recruitflow.models.actor import Actor, ActorRole
from recruitflow.models.application import Application, ApplicationStatus
from recruitflow.models.audit_entry import AuditEntry
from recruitflow.schemas.events import ChangeEvent
from recruitflow.services.transition_authorizer import (
    Deny,
    TransitionAuthorizer,
    transition_authorizer,
)
from recruitflow.utils.status_catalog import TransitionAction, TransitionRule

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Failures that say nothing about the request itself and are worth one retry
TRANSIENT_STORE_ERRORS = (
    OperationalError,
    InterfaceError,
    ConnectionError,
    asyncio.TimeoutError,
)


@dataclass(frozen=True)
class TransitionResult:
    application_id: UUID
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    version: int
    audit_entry_id: UUID
    # False when a concurrent identical request had already committed this move
    applied: bool = True


@dataclass
class _AttemptState:
    """What a previous attempt read, so a retry can recognise its own commit."""

    observed_version: Optional[int] = None
    observed_status: Optional[ApplicationStatus] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowService:
    """
    Applies lifecycle transitions to applications.

    Example:
        service = WorkflowService(store, publisher=broadcaster)
        result = await service.apply_transition(
            application_id, "REJECT", actor, note="Position filled", expected_version=2
        )
    """

    def __init__(
        self,
        store,
        authorizer: Optional[TransitionAuthorizer] = None,
        publisher=None,
        store_timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        publish_timeout: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            store: Application store (get / commit_transition / latest_entry)
            authorizer: TransitionAuthorizer (module default if None)
            publisher: Anything with ``async publish(event)``; None disables fan-out
            store_timeout: Seconds allowed per store attempt
            retry_attempts: Extra attempts after a transient store failure
            publish_timeout: Seconds allowed for handing an event to the publisher
            clock: Source of audit/event timestamps
        """
        self.store = store
        self.authorizer = authorizer or transition_authorizer
        self.publisher = publisher
        self.store_timeout = store_timeout or settings.store_timeout_seconds
        self.retry_attempts = (
            settings.store_retry_attempts if retry_attempts is None else retry_attempts
        )
        self.publish_timeout = publish_timeout or settings.broadcast_send_timeout
        self.clock = clock

    @property
    def catalog(self):
        return self.authorizer.catalog

    async def apply_transition(
        self,
        application_id: UUID,
        action: Union[TransitionAction, str],
        actor: Actor,
        note: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        """
        Apply one transition to an application.

        Args:
            application_id: UUID of the application
            action: Requested action name
            actor: Role and identity supplied by the session collaborator
            note: Human-readable note (required for moves into REJECTED)
            expected_version: Version the caller last read; None means
                last-writer-wins against the freshly read status

        Returns:
            TransitionResult with the new status and audit entry id

        Raises:
            ApplicationNotFound: Unknown application id
            StaleState: expected_version no longer matches the stored record
            InvalidTransition: The action does not apply to the live status
            RoleNotPermitted: The actor's role may not perform the action
            NoteRequired: A note is required and was empty
            TransientStoreError: The store failed twice; nothing was applied
        """
        log = logger.bind(
            application_id=str(application_id),
            action=action.value if isinstance(action, TransitionAction) else str(action),
            actor_role=actor.role.value,
            actor_id=actor.identity,
        )
        state = _AttemptState()

        result, event = await self._with_retry(
            lambda: self._attempt(application_id, action, actor, note, expected_version, state, log),
            log,
        )

        if event is not None:
            await self._publish(event, log)
        return result

    async def get_application(self, application_id: UUID) -> Application:
        log = logger.bind(application_id=str(application_id))
        application = await self._with_retry(lambda: self.store.get(application_id), log)
        if application is None:
            raise ApplicationNotFound(application_id)
        return application

    async def list_applications(
        self,
        actor: Actor,
        status: Optional[ApplicationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Application]:
        """Current state of every application the actor may see, for dashboard (re)loads."""
        log = logger.bind(actor_role=actor.role.value)
        return await self._with_retry(
            lambda: self.store.list_visible(
                actor.role, actor.identity, status=status, skip=skip, limit=limit
            ),
            log,
        )

    async def available_transitions(
        self, application_id: UUID, role: ActorRole
    ) -> tuple[Application, list[TransitionRule]]:
        application = await self.get_application(application_id)
        return application, self.authorizer.available_transitions(application.status, role)

    async def _attempt(
        self,
        application_id: UUID,
        action: Union[TransitionAction, str],
        actor: Actor,
        note: Optional[str],
        expected_version: Optional[int],
        state: _AttemptState,
        log,
    ) -> tuple[TransitionResult, Optional[ChangeEvent]]:
        application = await self.store.get(application_id)
        if application is None:
            raise ApplicationNotFound(application_id)

        if state.observed_version is not None:
            # A previous attempt timed out; its commit may have landed anyway
            own = await self._find_own_commit(application, state, action, actor)
            if own is not None:
                log.info("retry found transition already committed", version=own.version)
                return own, None

        if expected_version is not None and application.version != expected_version:
            log.info(
                "stale transition request",
                expected_version=expected_version,
                current_version=application.version,
            )
            raise StaleState(
                f"Application {application_id} is at version {application.version}, "
                f"not {expected_version}; refresh before retrying",
                current_status=application.status,
                current_version=application.version,
            )

        decision = self.authorizer.authorize(application.status, action, actor.role, note)
        if isinstance(decision, Deny):
            log.info("transition denied", reason=decision.reason.value, status=application.status.value)
            raise decision.to_error()

        rule = decision.rule
        state.observed_version = application.version
        state.observed_status = application.status

        now = self.clock()
        clean_note = note.strip() if note and note.strip() else None
        entry = await self.store.commit_transition(
            application_id,
            application.version,
            application.status,
            rule.to_status,
            {
                "id": uuid.uuid4(),
                "application_id": application_id,
                "sequence": application.version + 1,
                "from_status": application.status,
                "to_status": rule.to_status,
                "action": rule.action.value,
                "performed_by_role": actor.role,
                "performed_by_id": actor.identity,
                "performed_by_name": actor.display_name,
                "note": clean_note,
                "created_at": now,
            },
        )

        if entry is None:
            return await self._resolve_lost_race(application, rule, expected_version, log), None

        log.info(
            "transition committed",
            from_status=entry.from_status.value,
            to_status=entry.to_status.value,
            version=entry.sequence,
            audit_entry_id=str(entry.id),
        )

        result = TransitionResult(
            application_id=application_id,
            from_status=entry.from_status,
            to_status=entry.to_status,
            version=entry.sequence,
            audit_entry_id=entry.id,
        )
        return result, self._build_event(application, entry)

    async def _resolve_lost_race(
        self,
        application: Application,
        rule: TransitionRule,
        expected_version: Optional[int],
        log,
    ) -> TransitionResult:
        """
        Decide the outcome for a request whose guarded write matched nothing.

        Versioned callers always get StaleState. Unversioned callers get a
        no-op success when the winner made the very same move, otherwise
        InvalidTransition.
        """
        current = await self.store.get(application.id)
        if current is None:
            raise ApplicationNotFound(application.id)

        if expected_version is not None:
            log.info("lost concurrent transition race", current_version=current.version)
            raise StaleState(
                f"Application {application.id} changed while the request was processed",
                current_status=current.status,
                current_version=current.version,
            )

        latest = await self.store.latest_entry(application.id)
        if _is_same_move(latest, application.version, rule.from_status, rule.action.value):
            log.info(
                "identical transition committed concurrently",
                audit_entry_id=str(latest.id),
                to_status=latest.to_status.value,
            )
            return TransitionResult(
                application_id=application.id,
                from_status=latest.from_status,
                to_status=latest.to_status,
                version=latest.sequence,
                audit_entry_id=latest.id,
                applied=False,
            )

        log.info("lost concurrent transition race", current_status=current.status.value)
        raise InvalidTransition(
            f"Application {application.id} has already moved on to {current.status.value}",
            current_status=current.status,
        )

    async def _find_own_commit(
        self,
        application: Application,
        state: _AttemptState,
        action: Union[TransitionAction, str],
        actor: Actor,
    ) -> Optional[TransitionResult]:
        if application.version != state.observed_version + 1:
            return None
        latest = await self.store.latest_entry(application.id)
        action_name = action.value if isinstance(action, TransitionAction) else str(action).strip().upper()
        if not _is_same_move(latest, state.observed_version, state.observed_status, action_name):
            return None
        if latest.performed_by_id != actor.identity:
            return None
        return TransitionResult(
            application_id=application.id,
            from_status=latest.from_status,
            to_status=latest.to_status,
            version=latest.sequence,
            audit_entry_id=latest.id,
            applied=False,
        )

    def _build_event(self, application: Application, entry: AuditEntry) -> ChangeEvent:
        display = self.catalog.display(entry.to_status)
        return ChangeEvent(
            application_id=entry.application_id,
            old_status=entry.from_status,
            new_status=entry.to_status,
            action=entry.action,
            actor_role=entry.performed_by_role,
            timestamp=entry.created_at,
            version=entry.sequence,
            audit_entry_id=entry.id,
            applicant_id=application.applicant_id,
            job_id=application.job_id,
            title=display.notification_title,
            message=display.notification_message,
        )

    async def _publish(self, event: ChangeEvent, log) -> None:
        if self.publisher is None:
            return
        try:
            await asyncio.wait_for(self.publisher.publish(event), timeout=self.publish_timeout)
        except Exception as e:
            # The transition is committed; delivery problems are only logged
            log.warning("change event delivery failed", error=str(e), error_type=type(e).__name__)

    async def _with_retry(self, operation: Callable[[], Awaitable[T]], log) -> T:
        attempts = 1 + max(self.retry_attempts, 0)
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(operation(), timeout=self.store_timeout)
            except TRANSIENT_STORE_ERRORS as e:
                if attempt < attempts:
                    log.warning(
                        "store call failed, retrying",
                        attempt=attempt,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue
                log.error(
                    "store unavailable",
                    attempts=attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise TransientStoreError(
                    "The application store is temporarily unavailable; nothing was changed",
                    original_error=e,
                ) from e
        raise AssertionError("unreachable")


def _is_same_move(
    entry: Optional[AuditEntry],
    from_version: int,
    from_status: ApplicationStatus,
    action_name: str,
) -> bool:
    return (
        entry is not None
        and entry.sequence == from_version + 1
        and entry.from_status == from_status
        and entry.action == action_name
    )
