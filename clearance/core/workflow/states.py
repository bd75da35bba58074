"""Clearance workflow departments, statuses and transitions.

Decision Request Lifecycle:

    ┌──────────┐
    │ PENDING  │ ← Initial state (request submitted)
    └────┬─────┘
         │
         ├─────────────────────┐
         │ approve             │ reject
    ┌────▼─────┐         ┌─────▼──────┐
    │ APPROVED │         │  REJECTED  │
    └──────────┘         └────────────┘

Both outcomes are terminal. A subject is cleared when every department's
latest decision is APPROVED.
"""

from enum import Enum
from typing import Dict, Mapping, NamedTuple, Optional, Set, Union


class Department(str, Enum):
    """Departments that must sign off before a certificate is issued."""

    FINANCE = "finance"
    LIBRARY = "library"
    DEPARTMENT = "department"
    HOSTEL = "hostel"
    ADMINISTRATION = "administration"


class DecisionStatus(str, Enum):
    """Status of a single department decision."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DecisionTransition(str, Enum):
    """Actions that resolve a decision request."""

    APPROVE = "approve"  # PENDING → APPROVED
    REJECT = "reject"    # PENDING → REJECTED


class TransitionRule(NamedTuple):
    """Defines a valid status transition."""
    from_status: DecisionStatus
    to_status: DecisionStatus
    transition: DecisionTransition


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(DecisionStatus.PENDING, DecisionStatus.APPROVED, DecisionTransition.APPROVE),
    TransitionRule(DecisionStatus.PENDING, DecisionStatus.REJECTED, DecisionTransition.REJECT),
]

VALID_TRANSITIONS: Dict[DecisionStatus, Set[DecisionTransition]] = {}
TRANSITION_TARGETS: Dict[tuple[DecisionStatus, DecisionTransition], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_status, set()).add(rule.transition)
    TRANSITION_TARGETS[(rule.from_status, rule.transition)] = rule

TERMINAL_STATUSES: Set[DecisionStatus] = {
    DecisionStatus.APPROVED,
    DecisionStatus.REJECTED,
}

# Decision value accepted by resolve() → transition that produces it
DECISION_TRANSITIONS: Dict[DecisionStatus, DecisionTransition] = {
    rule.to_status: rule.transition for rule in TRANSITION_RULES
}


def can_transition(from_status: DecisionStatus, transition: DecisionTransition) -> bool:
    """Check if a transition is valid from the given status."""
    return transition in VALID_TRANSITIONS.get(from_status, set())


def get_transition_rule(
    from_status: DecisionStatus, transition: DecisionTransition
) -> Optional[TransitionRule]:
    """Get the transition rule for a status/action combination."""
    return TRANSITION_TARGETS.get((from_status, transition))


def get_target_status(
    from_status: DecisionStatus, transition: DecisionTransition
) -> Optional[DecisionStatus]:
    """Get the target status for a transition."""
    rule = get_transition_rule(from_status, transition)
    return rule.to_status if rule else None


def parse_department(value: Union[str, Department]) -> Department:
    """Coerce a department name; raises ValueError for unknown names."""
    if isinstance(value, Department):
        return value
    return Department(str(value).strip().lower())


def parse_decision(value: Union[str, DecisionStatus]) -> DecisionStatus:
    """Coerce a terminal decision; raises ValueError for anything else."""
    status = value if isinstance(value, DecisionStatus) else DecisionStatus(str(value).strip().lower())
    if status not in TERMINAL_STATUSES:
        raise ValueError(f"{status.value} is not a terminal decision")
    return status


def initial_statuses() -> Dict[str, str]:
    """Snapshot for a newly registered subject: every department pending."""
    return {department.value: DecisionStatus.PENDING.value for department in Department}


def is_fully_approved(statuses: Mapping[str, str]) -> bool:
    """True when every department, not just those present, is approved."""
    return all(
        statuses.get(department.value) == DecisionStatus.APPROVED.value
        for department in Department
    )
