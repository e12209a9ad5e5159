"""
Transition authorizer.

Pure policy over the status catalog: given the live status, a requested
action, the caller's role and the supplied note, decide whether the move is
allowed. No storage access, no clock, no mutable state, so the same inputs
always give the same decision.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union

from recruitflow.core.exceptions import (
    InvalidTransition,
    NoteRequired,
    RoleNotPermitted,
    WorkflowError,
)
from recruitflow.models.actor import ActorRole
from recruitflow.models.application import ApplicationStatus
from recruitflow.utils.status_catalog import (
    StatusCatalog,
    TransitionAction,
    TransitionRule,
    parse_action,
    status_catalog,
)


class DenialReason(str, enum.Enum):
    NO_SUCH_TRANSITION = "NO_SUCH_TRANSITION"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"
    NOTE_REQUIRED = "NOTE_REQUIRED"


@dataclass(frozen=True)
class Allow:
    rule: TransitionRule

    @property
    def target(self) -> ApplicationStatus:
        return self.rule.to_status


@dataclass(frozen=True)
class Deny:
    reason: DenialReason
    message: str
    current_status: ApplicationStatus

    def to_error(self) -> WorkflowError:
        """Map the denial onto the typed failure the engine raises."""
        if self.reason == DenialReason.NO_SUCH_TRANSITION:
            return InvalidTransition(self.message, current_status=self.current_status)
        if self.reason == DenialReason.ROLE_NOT_PERMITTED:
            return RoleNotPermitted(self.message)
        return NoteRequired(self.message)


Decision = Union[Allow, Deny]


class TransitionAuthorizer:
    """Decides ALLOW / DENY for a requested transition against a catalog."""

    def __init__(self, catalog: Optional[StatusCatalog] = None):
        self.catalog = catalog or status_catalog

    def authorize(
        self,
        current_status: ApplicationStatus,
        action: Union[TransitionAction, str],
        actor_role: ActorRole,
        note: Optional[str] = None,
    ) -> Decision:
        """
        Authorize a transition request.

        Checks run in a fixed order: a role with no write transitions at all is
        refused outright, then the (status, action) rule must exist, then the
        role must be listed on it, then a required note must be non-blank.

        Args:
            current_status: Freshly read status of the application
            action: Requested action (enum or client-supplied name)
            actor_role: Role of the caller
            note: Optional human-readable note

        Returns:
            Allow carrying the matched rule, or Deny with the reason
        """
        if actor_role not in self.catalog.writable_roles():
            return Deny(
                DenialReason.ROLE_NOT_PERMITTED,
                f"Role {actor_role.value} cannot change application status",
                current_status,
            )

        parsed = parse_action(action)
        rule = self.catalog.rule_for(current_status, parsed) if parsed else None
        if rule is None:
            return Deny(
                DenialReason.NO_SUCH_TRANSITION,
                f"Action {_action_name(action)} is not available while the application "
                f"is {current_status.value}",
                current_status,
            )

        if actor_role not in rule.allowed_roles:
            allowed = ", ".join(sorted(r.value for r in rule.allowed_roles))
            return Deny(
                DenialReason.ROLE_NOT_PERMITTED,
                f"Action {rule.action.value} requires one of: {allowed}",
                current_status,
            )

        if rule.requires_note and not (note and note.strip()):
            return Deny(
                DenialReason.NOTE_REQUIRED,
                f"Action {rule.action.value} requires a note",
                current_status,
            )

        return Allow(rule)

    def available_transitions(
        self, current_status: ApplicationStatus, actor_role: ActorRole
    ) -> list[TransitionRule]:
        """Rules the role may invoke from the given status (drives action buttons)."""
        return [
            rule
            for rule in self.catalog.rules_for(current_status)
            if actor_role in rule.allowed_roles
        ]


def _action_name(action) -> str:
    if isinstance(action, TransitionAction):
        return action.value
    return repr(action)


transition_authorizer = TransitionAuthorizer()
