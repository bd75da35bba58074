"""Clearance workflow module.

Implements the decision request state machine, the subject registry, the
decision ledger, the aggregation engine and the issuance trigger.
"""

from .states import Department, DecisionStatus, DecisionTransition, VALID_TRANSITIONS
from .machine import DecisionStateMachine, TransitionError
from .registry import SubjectRegistry
from .engine import AggregationEngine, ApplyOutcome, DepartmentStatus, StatusView
from .ledger import DecisionLedger, Resolution, Submission
from .issuance import IssuanceTrigger

__all__ = [
    "Department",
    "DecisionStatus",
    "DecisionTransition",
    "VALID_TRANSITIONS",
    "DecisionStateMachine",
    "TransitionError",
    "SubjectRegistry",
    "AggregationEngine",
    "ApplyOutcome",
    "DepartmentStatus",
    "StatusView",
    "DecisionLedger",
    "Resolution",
    "Submission",
    "IssuanceTrigger",
]
