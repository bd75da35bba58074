"""Decision ledger.

Records decision requests per (subject, department) and resolves them.
Resolution is a compare-and-swap on the request row, performed while the
subject row is locked, followed by the aggregation engine's snapshot write
in the same transaction.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from clearance.core.exceptions import (
    AlreadyResolvedError,
    ClearanceCompletedError,
    InvalidDecisionError,
    InvalidDepartmentError,
    NotFoundError,
)
from clearance.db.models import DecisionRequest
from .engine import AggregationEngine, ApplyOutcome
from .machine import DecisionStateMachine, TransitionError
from .registry import SubjectRegistry
from .states import (
    DECISION_TRANSITIONS,
    Department,
    DecisionStatus,
    parse_decision,
    parse_department,
)

logger = logging.getLogger(__name__)


@dataclass
class Submission:
    """Outcome of submitting a request."""
    request: DecisionRequest
    created: bool


@dataclass
class Resolution:
    """Outcome of resolving a request."""
    request: DecisionRequest
    outcome: ApplyOutcome
    artifact: Optional[str] = None

    @property
    def issued_now(self) -> bool:
        return self.outcome.issued_now


def _coerce_department(value: Union[str, Department]) -> Department:
    try:
        return parse_department(value)
    except ValueError:
        raise InvalidDepartmentError(
            f"Unknown department: {value}",
            detail=f"Expected one of: {', '.join(d.value for d in Department)}",
        )


def _coerce_status(value: Union[str, DecisionStatus]) -> DecisionStatus:
    try:
        return value if isinstance(value, DecisionStatus) else DecisionStatus(str(value).lower())
    except ValueError:
        raise InvalidDecisionError(f"Unknown status: {value}")


class DecisionLedger:
    """Submission, resolution and listing of decision requests."""

    def __init__(self, db: Session, engine: Optional[AggregationEngine] = None):
        self.db = db
        self.registry = SubjectRegistry(db)
        self.engine = engine or AggregationEngine(db)

    def submit(self, subject_id: str, department: Union[str, Department]) -> Submission:
        """
        Submit a clearance request to a department.

        A subject has at most one outstanding request per department; while
        one is pending, submitting again returns it instead of creating a
        second one.

        Raises:
            NotFoundError: If the subject is unknown
            InvalidDepartmentError: If the department is not an approving department
            ClearanceCompletedError: If the subject's certificate was already issued
        """
        self.registry.find(subject_id)
        dept = _coerce_department(department)

        subject = self.registry.lock(subject_id)
        if subject.artifact_issued:
            raise ClearanceCompletedError(
                f"Clearance for {subject_id} is complete; no further requests accepted"
            )

        outstanding = self.find_outstanding(subject_id, dept)
        if outstanding is not None:
            return Submission(request=outstanding, created=False)

        request = DecisionRequest(
            subject_id=subject_id,
            department=dept.value,
            status=DecisionStatus.PENDING.value,
        )
        self.db.add(request)
        self.db.flush()

        logger.info(f"Subject {subject_id} requested {dept.value} clearance ({request.id})")
        return Submission(request=request, created=True)

    def resolve(
        self,
        request_id: Union[str, UUID],
        decision: Union[str, DecisionStatus],
        *,
        resolved_by: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> Resolution:
        """
        Resolve a pending request and apply the decision to the subject.

        Raises:
            InvalidDecisionError: If decision is not approved or rejected
            NotFoundError: If the request does not exist
            AlreadyResolvedError: If the request is no longer pending
            ClearanceCompletedError: If the subject's certificate was already issued
        """
        try:
            status = parse_decision(decision)
        except ValueError:
            raise InvalidDecisionError(
                f"Invalid decision: {getattr(decision, 'value', decision)}",
                detail="Expected 'approved' or 'rejected'",
            )

        request = self.get(request_id)
        machine = DecisionStateMachine(request.id, DecisionStatus(request.status))
        if machine.is_terminal:
            raise AlreadyResolvedError(request.id, request.status)

        # Per-subject critical section for the rest of the transaction
        subject = self.registry.lock(request.subject_id)
        if subject.artifact_issued:
            raise ClearanceCompletedError(
                f"Clearance for {subject.id} is complete; decision not recorded"
            )

        try:
            machine.transition(DECISION_TRANSITIONS[status], resolved_by=resolved_by, comment=comment)
        except TransitionError:
            raise AlreadyResolvedError(request.id, request.status)
        record = machine.last_transition

        result = self.db.execute(
            update(DecisionRequest)
            .where(
                DecisionRequest.id == request.id,
                DecisionRequest.status == DecisionStatus.PENDING.value,
            )
            .values(
                status=record["to_status"],
                resolved_at=record["timestamp"],
                resolved_by=resolved_by,
                comment=comment,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(request)
        if result.rowcount != 1:
            raise AlreadyResolvedError(request.id, request.status)

        outcome = self.engine.apply(subject.id, Department(request.department), status)
        return Resolution(request=request, outcome=outcome)

    def get(self, request_id: Union[str, UUID]) -> DecisionRequest:
        """Get a request by id or raise NotFoundError."""
        try:
            key = request_id if isinstance(request_id, UUID) else UUID(str(request_id))
        except ValueError:
            raise NotFoundError(f"Decision request {request_id} not found")

        request = self.db.get(DecisionRequest, key)
        if request is None:
            raise NotFoundError(f"Decision request {request_id} not found")
        return request

    def find_outstanding(self, subject_id: str, department: Department) -> Optional[DecisionRequest]:
        """The pending request for a (subject, department) pair, if any."""
        return (
            self.db.query(DecisionRequest)
            .filter(
                DecisionRequest.subject_id == subject_id,
                DecisionRequest.department == department.value,
                DecisionRequest.status == DecisionStatus.PENDING.value,
            )
            .order_by(DecisionRequest.created_at.desc())
            .first()
        )

    def list_by_subject(self, subject_id: str) -> List[DecisionRequest]:
        """All requests of a subject, oldest first."""
        self.registry.find(subject_id)
        return (
            self.db.query(DecisionRequest)
            .filter(DecisionRequest.subject_id == subject_id)
            .order_by(DecisionRequest.created_at.asc())
            .all()
        )

    def list_by_department(
        self,
        department: Union[str, Department],
        status: Optional[Union[str, DecisionStatus]] = None,
    ) -> List[DecisionRequest]:
        """Requests addressed to a department, optionally filtered by status."""
        items, _ = self.list_requests(department=department, status=status, limit=None)
        return items

    def list_requests(
        self,
        *,
        department: Optional[Union[str, Department]] = None,
        status: Optional[Union[str, DecisionStatus]] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> Tuple[List[DecisionRequest], int]:
        """
        List requests for administrative review.

        Returns:
            Tuple of (page of requests oldest first, total matching count)
        """
        query = self.db.query(DecisionRequest)

        if department is not None:
            query = query.filter(DecisionRequest.department == _coerce_department(department).value)
        if status is not None:
            query = query.filter(DecisionRequest.status == _coerce_status(status).value)

        total = query.count()
        query = query.order_by(DecisionRequest.created_at.asc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        return query.all(), total
