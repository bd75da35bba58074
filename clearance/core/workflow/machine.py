"""Decision request state machine.

Validates a single request's transition and builds the record describing it.
Persistence (and the compare-and-swap that makes resolution race-free) is
the ledger's job.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID

from clearance.db.base import utcnow
from .states import (
    DecisionStatus,
    DecisionTransition,
    get_transition_rule,
    TERMINAL_STATUSES,
)


class TransitionError(Exception):
    """Raised when a status transition is invalid."""

    def __init__(self, message: str, from_status: DecisionStatus, transition: DecisionTransition):
        super().__init__(message)
        self.from_status = from_status
        self.transition = transition


class DecisionStateMachine:
    """
    State machine for one decision request.

    Enforces that a request leaves PENDING exactly once and only towards
    APPROVED or REJECTED.
    """

    def __init__(self, request_id: UUID, current_status: DecisionStatus):
        self.request_id = request_id
        self._status = current_status
        self._last_transition: Optional[Dict[str, Any]] = None

    @property
    def status(self) -> DecisionStatus:
        """Current status of the request."""
        return self._status

    @property
    def is_terminal(self) -> bool:
        """Check if the request has been resolved."""
        return self._status in TERMINAL_STATUSES

    @property
    def last_transition(self) -> Optional[Dict[str, Any]]:
        return self._last_transition

    def transition(
        self,
        transition: DecisionTransition,
        *,
        resolved_by: Optional[str] = None,
        comment: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> DecisionStatus:
        """
        Perform a status transition.

        Args:
            transition: The transition to perform
            resolved_by: Name of the reviewer recording the decision
            comment: Optional reviewer comment
            at: Time of the decision (now by default)

        Returns:
            The new status after the transition

        Raises:
            TransitionError: If the transition is invalid from the current status
        """
        rule = get_transition_rule(self._status, transition)
        if rule is None:
            raise TransitionError(
                f"Cannot perform {transition.value} from status {self._status.value}",
                self._status,
                transition,
            )

        self._last_transition = {
            "request_id": self.request_id,
            "from_status": rule.from_status.value,
            "to_status": rule.to_status.value,
            "transition": transition.value,
            "resolved_by": resolved_by,
            "comment": comment,
            "timestamp": at or utcnow(),
        }
        self._status = rule.to_status
        return self._status
