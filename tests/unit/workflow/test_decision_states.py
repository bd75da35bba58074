"""Tests for decision states and the request state machine."""

import pytest
from uuid import uuid4

from clearance.core.workflow.states import (
    Department, DecisionStatus, DecisionTransition,
    VALID_TRANSITIONS, TERMINAL_STATUSES, DECISION_TRANSITIONS,
    can_transition, get_target_status, get_transition_rule,
    parse_department, parse_decision, initial_statuses, is_fully_approved,
)
from clearance.core.workflow.machine import DecisionStateMachine, TransitionError


class TestDepartments:
    """Test the fixed department set."""

    def test_all_departments_defined(self):
        """Test that all approving departments exist."""
        assert {d.value for d in Department} == {
            "finance", "library", "department", "hostel", "administration",
        }

    def test_parse_department_normalises_case(self):
        assert parse_department("Finance") is Department.FINANCE
        assert parse_department(" hostel ") is Department.HOSTEL
        assert parse_department(Department.LIBRARY) is Department.LIBRARY

    def test_parse_unknown_department(self):
        with pytest.raises(ValueError):
            parse_department("cafeteria")


class TestDecisionStatuses:
    """Test status definitions."""

    def test_terminal_statuses(self):
        assert DecisionStatus.APPROVED in TERMINAL_STATUSES
        assert DecisionStatus.REJECTED in TERMINAL_STATUSES
        assert DecisionStatus.PENDING not in TERMINAL_STATUSES

    def test_parse_decision(self):
        assert parse_decision("approved") is DecisionStatus.APPROVED
        assert parse_decision("REJECTED") is DecisionStatus.REJECTED

    @pytest.mark.parametrize("value", ["pending", "maybe", ""])
    def test_parse_decision_rejects_non_terminal(self, value):
        with pytest.raises(ValueError):
            parse_decision(value)

    def test_decision_transitions_cover_terminal_statuses(self):
        assert set(DECISION_TRANSITIONS) == TERMINAL_STATUSES


class TestTransitions:
    """Test valid status transitions."""

    def test_pending_transitions(self):
        assert can_transition(DecisionStatus.PENDING, DecisionTransition.APPROVE)
        assert can_transition(DecisionStatus.PENDING, DecisionTransition.REJECT)

    def test_terminal_statuses_have_no_outgoing(self):
        for status in TERMINAL_STATUSES:
            assert status not in VALID_TRANSITIONS
            assert not can_transition(status, DecisionTransition.APPROVE)
            assert not can_transition(status, DecisionTransition.REJECT)

    def test_get_target_status(self):
        assert get_target_status(DecisionStatus.PENDING, DecisionTransition.APPROVE) == DecisionStatus.APPROVED
        assert get_target_status(DecisionStatus.PENDING, DecisionTransition.REJECT) == DecisionStatus.REJECTED
        assert get_target_status(DecisionStatus.APPROVED, DecisionTransition.REJECT) is None

    def test_get_transition_rule(self):
        rule = get_transition_rule(DecisionStatus.PENDING, DecisionTransition.REJECT)
        assert rule is not None
        assert rule.to_status == DecisionStatus.REJECTED


class TestAggregationHelpers:
    """Test snapshot helpers."""

    def test_initial_statuses_cover_every_department(self):
        statuses = initial_statuses()
        assert set(statuses) == {d.value for d in Department}
        assert set(statuses.values()) == {"pending"}

    def test_fully_approved(self):
        statuses = {d.value: "approved" for d in Department}
        assert is_fully_approved(statuses)

    def test_one_rejection_blocks_approval(self):
        statuses = {d.value: "approved" for d in Department}
        statuses["finance"] = "rejected"
        assert not is_fully_approved(statuses)

    def test_missing_department_is_not_approved(self):
        statuses = {d.value: "approved" for d in Department}
        del statuses["hostel"]
        assert not is_fully_approved(statuses)


class TestDecisionStateMachine:
    """Test DecisionStateMachine class."""

    def test_initial_status(self):
        machine = DecisionStateMachine(uuid4(), DecisionStatus.PENDING)
        assert machine.status == DecisionStatus.PENDING
        assert not machine.is_terminal
        assert machine.last_transition is None

    def test_resolved_request_is_terminal(self):
        machine = DecisionStateMachine(uuid4(), DecisionStatus.REJECTED)
        assert machine.is_terminal

    def test_approve(self):
        request_id = uuid4()
        machine = DecisionStateMachine(request_id, DecisionStatus.PENDING)

        new_status = machine.transition(DecisionTransition.APPROVE, resolved_by="Bursar")

        assert new_status == DecisionStatus.APPROVED
        assert machine.is_terminal
        record = machine.last_transition
        assert record["request_id"] == request_id
        assert record["from_status"] == "pending"
        assert record["to_status"] == "approved"
        assert record["resolved_by"] == "Bursar"
        assert record["timestamp"] is not None

    def test_reject_with_comment(self):
        machine = DecisionStateMachine(uuid4(), DecisionStatus.PENDING)
        machine.transition(DecisionTransition.REJECT, comment="Outstanding fees")
        assert machine.status == DecisionStatus.REJECTED
        assert machine.last_transition["comment"] == "Outstanding fees"

    def test_second_transition_raises(self):
        machine = DecisionStateMachine(uuid4(), DecisionStatus.PENDING)
        machine.transition(DecisionTransition.APPROVE)

        with pytest.raises(TransitionError) as exc_info:
            machine.transition(DecisionTransition.REJECT)

        assert exc_info.value.from_status == DecisionStatus.APPROVED
        assert machine.status == DecisionStatus.APPROVED
