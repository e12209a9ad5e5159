"""
Status catalog for the application lifecycle.

The catalog is the single table of legal moves between application statuses.
It is built once at import time, validated, and exposed read-only:

    PENDING ──UNDER_REVIEW──> UNDER_REVIEW ──SCHEDULE_INTERVIEW──> INTERVIEW_SCHEDULED
       │                           │                                    │
       └──REJECT──> REJECTED <─────┘                         COMPLETE_INTERVIEW
                       ^                                                │
                       │                                                v
                       ├────────REJECT──────────────────────── INTERVIEW_COMPLETED
                       │                                                │
                  FINAL_REJECT                                       ACCEPT
                       │                                                v
                       └─────────────────────────────────────────── ACCEPTED ──HIRE──> HIRED

HIRED and REJECTED are terminal. Only ADMIN performs the final step out of
ACCEPTED; HR drives every earlier stage; APPLICANT has no write transitions.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from recruitflow.core.exceptions import CatalogConfigurationError
from recruitflow.models.actor import ActorRole
from recruitflow.models.application import ApplicationStatus


class TransitionAction(str, enum.Enum):
    UNDER_REVIEW = "UNDER_REVIEW"
    SCHEDULE_INTERVIEW = "SCHEDULE_INTERVIEW"
    COMPLETE_INTERVIEW = "COMPLETE_INTERVIEW"
    ACCEPT = "ACCEPT"
    HIRE = "HIRE"
    REJECT = "REJECT"
    FINAL_REJECT = "FINAL_REJECT"


@dataclass(frozen=True)
class TransitionRule:
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    action: TransitionAction
    allowed_roles: frozenset[ActorRole]
    requires_note: bool = False
    description: str = ""
    requires_confirmation: bool = False
    confirmation_message: Optional[str] = None


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    color: str
    notification_title: str
    notification_message: str


_STAFF = frozenset({ActorRole.HR, ActorRole.ADMIN})
_ADMIN_ONLY = frozenset({ActorRole.ADMIN})

DEFAULT_RULES: tuple[TransitionRule, ...] = (
    TransitionRule(
        ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW,
        TransitionAction.UNDER_REVIEW, _STAFF,
        description="Start reviewing the application",
    ),
    TransitionRule(
        ApplicationStatus.PENDING, ApplicationStatus.REJECTED,
        TransitionAction.REJECT, _STAFF, requires_note=True,
        description="Reject the application",
        requires_confirmation=True,
        confirmation_message="Are you sure you want to reject this application?",
    ),
    TransitionRule(
        ApplicationStatus.UNDER_REVIEW, ApplicationStatus.INTERVIEW_SCHEDULED,
        TransitionAction.SCHEDULE_INTERVIEW, _STAFF,
        description="Schedule an interview with the candidate",
    ),
    TransitionRule(
        ApplicationStatus.UNDER_REVIEW, ApplicationStatus.REJECTED,
        TransitionAction.REJECT, _STAFF, requires_note=True,
        description="Reject the application after review",
        requires_confirmation=True,
        confirmation_message="Are you sure you want to reject this application after review?",
    ),
    TransitionRule(
        ApplicationStatus.INTERVIEW_SCHEDULED, ApplicationStatus.INTERVIEW_COMPLETED,
        TransitionAction.COMPLETE_INTERVIEW, _STAFF,
        description="Mark the interview as completed",
    ),
    TransitionRule(
        ApplicationStatus.INTERVIEW_COMPLETED, ApplicationStatus.ACCEPTED,
        TransitionAction.ACCEPT, _STAFF,
        description="Accept the candidate",
        requires_confirmation=True,
        confirmation_message="Are you sure you want to accept this candidate?",
    ),
    TransitionRule(
        ApplicationStatus.INTERVIEW_COMPLETED, ApplicationStatus.REJECTED,
        TransitionAction.REJECT, _STAFF, requires_note=True,
        description="Reject the candidate after the interview",
        requires_confirmation=True,
        confirmation_message="Are you sure you want to reject this candidate after the interview?",
    ),
    TransitionRule(
        ApplicationStatus.ACCEPTED, ApplicationStatus.HIRED,
        TransitionAction.HIRE, _ADMIN_ONLY,
        description="Hire the candidate",
        requires_confirmation=True,
        confirmation_message="Are you sure you want to hire this candidate?",
    ),
    TransitionRule(
        ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED,
        TransitionAction.FINAL_REJECT, _ADMIN_ONLY, requires_note=True,
        description="Reject the accepted candidate at final approval",
        requires_confirmation=True,
        confirmation_message="Are you sure you want to reject this candidate at final approval?",
    ),
)

STATUS_DISPLAY: Mapping[ApplicationStatus, StatusDisplay] = MappingProxyType({
    ApplicationStatus.PENDING: StatusDisplay(
        "Pending", "blue",
        "Application Received",
        "Your application has been received and is being processed.",
    ),
    ApplicationStatus.UNDER_REVIEW: StatusDisplay(
        "Under Review", "yellow",
        "Application Under Review",
        "Your application is now under review. We'll get back to you soon!",
    ),
    ApplicationStatus.INTERVIEW_SCHEDULED: StatusDisplay(
        "Interview Scheduled", "purple",
        "Interview Scheduled",
        "We'd like to schedule an interview with you. Check your email for details.",
    ),
    ApplicationStatus.INTERVIEW_COMPLETED: StatusDisplay(
        "Interview Completed", "indigo",
        "Interview Completed",
        "Your interview has been completed. We'll review the results and get back to you.",
    ),
    ApplicationStatus.ACCEPTED: StatusDisplay(
        "Accepted", "green",
        "Application Accepted",
        "Congratulations! Your application has been accepted. We'll be in touch with next steps.",
    ),
    ApplicationStatus.HIRED: StatusDisplay(
        "Hired", "emerald",
        "Congratulations! You're Hired!",
        "Welcome to the team! We're excited to have you on board!",
    ),
    ApplicationStatus.REJECTED: StatusDisplay(
        "Rejected", "red",
        "Application Update",
        "Thank you for your interest. Unfortunately, we've decided to move forward with other candidates.",
    ),
})


class StatusCatalog:
    """
    Immutable table of transition rules indexed by (from_status, action).

    Construction validates the table; any inconsistency raises
    CatalogConfigurationError so a broken catalog stops the process at
    startup instead of surfacing as a runtime denial.

    Example:
        >>> catalog = StatusCatalog(DEFAULT_RULES)
        >>> [r.action.value for r in catalog.rules_for(ApplicationStatus.ACCEPTED)]
        ['HIRE', 'FINAL_REJECT']
        >>> catalog.rules_for(ApplicationStatus.HIRED)
        []
    """

    initial_state = ApplicationStatus.PENDING
    terminal_states = frozenset({ApplicationStatus.HIRED, ApplicationStatus.REJECTED})

    def __init__(
        self,
        rules: Iterable[TransitionRule],
        states: Iterable[ApplicationStatus] = tuple(ApplicationStatus),
    ):
        self._states = frozenset(states)
        self._rules = tuple(rules)

        index: dict[tuple[ApplicationStatus, TransitionAction], TransitionRule] = {}
        by_state: dict[ApplicationStatus, list[TransitionRule]] = {s: [] for s in self._states}
        for rule in self._rules:
            key = (rule.from_status, rule.action)
            if key in index:
                raise CatalogConfigurationError(
                    f"Duplicate rule for {rule.from_status.value} + {rule.action.value}"
                )
            for state in (rule.from_status, rule.to_status):
                if state not in self._states:
                    raise CatalogConfigurationError(
                        f"Rule {rule.action.value} references unknown state {state.value}"
                    )
            index[key] = rule
            by_state[rule.from_status].append(rule)

        self._index = MappingProxyType(index)
        self._by_state = MappingProxyType({s: tuple(r) for s, r in by_state.items()})
        self._validate()

    def _validate(self) -> None:
        if self.initial_state not in self._states:
            raise CatalogConfigurationError("Initial state PENDING is not part of the catalog")

        for rule in self._rules:
            if not rule.allowed_roles:
                raise CatalogConfigurationError(
                    f"Rule {rule.from_status.value} -> {rule.to_status.value} has no allowed roles"
                )
            if rule.to_status == ApplicationStatus.REJECTED and not rule.requires_note:
                raise CatalogConfigurationError(
                    f"Rule {rule.action.value} moves into REJECTED without requiring a note"
                )

        for state in self._states:
            outbound = self._by_state[state]
            if state in self.terminal_states and outbound:
                raise CatalogConfigurationError(f"Terminal state {state.value} has outbound rules")
            if state not in self.terminal_states and not outbound:
                raise CatalogConfigurationError(f"State {state.value} has no outbound rule")

        reachable = {self.initial_state}
        frontier = [self.initial_state]
        while frontier:
            for rule in self._by_state[frontier.pop()]:
                if rule.to_status not in reachable:
                    reachable.add(rule.to_status)
                    frontier.append(rule.to_status)
        unreachable = self._states - reachable
        if unreachable:
            names = ", ".join(sorted(s.value for s in unreachable))
            raise CatalogConfigurationError(f"States unreachable from PENDING: {names}")

    def all_states(self) -> set[ApplicationStatus]:
        return set(self._states)

    def rules_for(self, state: ApplicationStatus) -> list[TransitionRule]:
        return list(self._by_state.get(state, ()))

    def rule_for(
        self, state: ApplicationStatus, action: TransitionAction
    ) -> Optional[TransitionRule]:
        return self._index.get((state, action))

    def rules(self) -> tuple[TransitionRule, ...]:
        return self._rules

    def actions(self) -> set[TransitionAction]:
        return {rule.action for rule in self._rules}

    def writable_roles(self) -> frozenset[ActorRole]:
        """Roles that can invoke at least one rule somewhere in the catalog."""
        roles: set[ActorRole] = set()
        for rule in self._rules:
            roles.update(rule.allowed_roles)
        return frozenset(roles)

    def is_terminal(self, state: ApplicationStatus) -> bool:
        return state in self.terminal_states

    def display(self, state: ApplicationStatus) -> StatusDisplay:
        return STATUS_DISPLAY[state]


def parse_action(value) -> Optional[TransitionAction]:
    """Coerce a client-supplied action name, returning None for unknown names."""
    if isinstance(value, TransitionAction):
        return value
    if not value:
        return None
    try:
        return TransitionAction(str(value).strip().upper())
    except ValueError:
        return None


# Loaded once per process; a malformed table fails the import.
status_catalog = StatusCatalog(DEFAULT_RULES)
