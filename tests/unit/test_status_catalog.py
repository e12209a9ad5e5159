"""
Unit tests for the status catalog.

The default table is checked for the lifecycle guarantees dashboards rely on;
hand-built tables check that a malformed catalog refuses to load.
"""

from __future__ import annotations

import pytest

from recruitflow.core.exceptions import CatalogConfigurationError
from recruitflow.models.actor import ActorRole
from recruitflow.models.application import ApplicationStatus
from recruitflow.utils.status_catalog import (
    DEFAULT_RULES,
    StatusCatalog,
    TransitionAction,
    TransitionRule,
    parse_action,
    status_catalog,
)

TERMINAL = (ApplicationStatus.HIRED, ApplicationStatus.REJECTED)


def _without(action: TransitionAction, from_status: ApplicationStatus) -> list[TransitionRule]:
    return [
        rule for rule in DEFAULT_RULES
        if not (rule.action == action and rule.from_status == from_status)
    ]


# ---------------------------------------------------------------------------
# Default table
# ---------------------------------------------------------------------------
class TestDefaultCatalog:
    def test_has_seven_states_and_nine_rules(self):
        assert status_catalog.all_states() == set(ApplicationStatus)
        assert len(status_catalog.rules()) == 9

    def test_initial_state_is_pending(self):
        assert status_catalog.initial_state == ApplicationStatus.PENDING

    @pytest.mark.parametrize("state", TERMINAL)
    def test_terminal_states_have_no_outbound_rules(self, state):
        assert status_catalog.is_terminal(state)
        assert status_catalog.rules_for(state) == []

    @pytest.mark.parametrize(
        "state",
        [s for s in ApplicationStatus if s not in TERMINAL],
    )
    def test_every_non_terminal_state_can_move(self, state):
        assert not status_catalog.is_terminal(state)
        assert status_catalog.rules_for(state)

    def test_every_move_into_rejected_requires_a_note(self):
        into_rejected = [r for r in status_catalog.rules() if r.to_status == ApplicationStatus.REJECTED]
        assert len(into_rejected) == 4
        assert all(rule.requires_note for rule in into_rejected)

    @pytest.mark.parametrize("action", [TransitionAction.HIRE, TransitionAction.FINAL_REJECT])
    def test_final_decisions_are_admin_only(self, action):
        rule = status_catalog.rule_for(ApplicationStatus.ACCEPTED, action)
        assert rule is not None
        assert rule.allowed_roles == frozenset({ActorRole.ADMIN})

    def test_applicant_has_no_write_transitions(self):
        assert ActorRole.APPLICANT not in status_catalog.writable_roles()
        assert status_catalog.writable_roles() == frozenset({ActorRole.HR, ActorRole.ADMIN})

    def test_rule_lookup_misses_return_none(self):
        assert status_catalog.rule_for(ApplicationStatus.PENDING, TransitionAction.HIRE) is None
        assert status_catalog.rule_for(ApplicationStatus.HIRED, TransitionAction.REJECT) is None

    def test_rules_for_accepted_in_table_order(self):
        actions = [r.action for r in status_catalog.rules_for(ApplicationStatus.ACCEPTED)]
        assert actions == [TransitionAction.HIRE, TransitionAction.FINAL_REJECT]

    def test_every_status_has_display_metadata(self):
        for state in ApplicationStatus:
            display = status_catalog.display(state)
            assert display.label
            assert display.notification_title


# ---------------------------------------------------------------------------
# Startup validation
# ---------------------------------------------------------------------------
class TestCatalogValidation:
    def test_duplicate_rule_rejected(self):
        rules = list(DEFAULT_RULES) + [DEFAULT_RULES[0]]
        with pytest.raises(CatalogConfigurationError, match="Duplicate"):
            StatusCatalog(rules)

    def test_outbound_rule_from_terminal_state_rejected(self):
        rules = list(DEFAULT_RULES) + [
            TransitionRule(
                ApplicationStatus.HIRED, ApplicationStatus.UNDER_REVIEW,
                TransitionAction.UNDER_REVIEW, frozenset({ActorRole.ADMIN}),
            )
        ]
        with pytest.raises(CatalogConfigurationError, match="Terminal state HIRED"):
            StatusCatalog(rules)

    def test_move_into_rejected_without_note_rejected(self):
        rules = _without(TransitionAction.REJECT, ApplicationStatus.PENDING) + [
            TransitionRule(
                ApplicationStatus.PENDING, ApplicationStatus.REJECTED,
                TransitionAction.REJECT, frozenset({ActorRole.HR}),
            )
        ]
        with pytest.raises(CatalogConfigurationError, match="without requiring a note"):
            StatusCatalog(rules)

    def test_rule_without_roles_rejected(self):
        rules = _without(TransitionAction.ACCEPT, ApplicationStatus.INTERVIEW_COMPLETED) + [
            TransitionRule(
                ApplicationStatus.INTERVIEW_COMPLETED, ApplicationStatus.ACCEPTED,
                TransitionAction.ACCEPT, frozenset(),
            )
        ]
        with pytest.raises(CatalogConfigurationError, match="no allowed roles"):
            StatusCatalog(rules)

    def test_dead_end_state_rejected(self):
        rules = _without(TransitionAction.COMPLETE_INTERVIEW, ApplicationStatus.INTERVIEW_SCHEDULED)
        with pytest.raises(CatalogConfigurationError, match="INTERVIEW_SCHEDULED"):
            StatusCatalog(rules)

    def test_unreachable_states_rejected(self):
        rules = _without(TransitionAction.UNDER_REVIEW, ApplicationStatus.PENDING)
        with pytest.raises(CatalogConfigurationError, match="unreachable"):
            StatusCatalog(rules)

    def test_unknown_state_rejected(self):
        states = [s for s in ApplicationStatus if s != ApplicationStatus.HIRED]
        with pytest.raises(CatalogConfigurationError, match="unknown state HIRED"):
            StatusCatalog(DEFAULT_RULES, states=states)


# ---------------------------------------------------------------------------
# parse_action
# ---------------------------------------------------------------------------
class TestParseAction:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("UNDER_REVIEW", TransitionAction.UNDER_REVIEW),
            ("  reject ", TransitionAction.REJECT),
            ("final_reject", TransitionAction.FINAL_REJECT),
            (TransitionAction.HIRE, TransitionAction.HIRE),
        ],
    )
    def test_known_actions(self, value, expected):
        assert parse_action(value) == expected

    @pytest.mark.parametrize("value", ["", None, "PROMOTE", "HIRED"])
    def test_unknown_actions(self, value):
        assert parse_action(value) is None
