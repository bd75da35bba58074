"""Aggregation engine.

Sole writer of ``Subject.status_by_department`` and ``Subject.artifact_issued``.
The snapshot is a materialised view of the ledger (latest resolution per
department); ``derive_statuses`` recomputes it from the ledger,
``check_consistency`` compares the two and ``reconcile`` repairs drift.

All writes happen with the subject row locked, so the status write and the
issuance check-and-flip form one critical section per subject.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from clearance.db.base import utcnow
from clearance.db.models import DecisionRequest, Subject
from .registry import SubjectRegistry
from .states import Department, DecisionStatus, is_fully_approved

logger = logging.getLogger(__name__)

NOTE_NO_REQUEST = "no request sent yet"
NOTE_AWAITING_DECISION = "awaiting decision"


@dataclass
class ApplyOutcome:
    """Result of writing to a subject's snapshot."""
    subject: Subject
    issued_now: bool = False
    changed_departments: List[Department] = field(default_factory=list)


@dataclass
class DepartmentStatus:
    """Status of one department as seen through the ledger."""
    department: Department
    status: DecisionStatus
    request_id: Optional[UUID] = None
    note: Optional[str] = None


@dataclass
class StatusView:
    """Read-path view of a subject's clearance."""
    subject_id: str
    name: str
    departments: Dict[Department, DepartmentStatus]
    artifact_issued: bool
    issued_at: Optional[datetime] = None

    @property
    def statuses(self) -> Dict[str, str]:
        return {d.value: s.status.value for d, s in self.departments.items()}


class AggregationEngine:
    """Applies resolved decisions to subject snapshots and detects full approval."""

    def __init__(self, db: Session):
        self.db = db
        self.registry = SubjectRegistry(db)

    def apply(
        self,
        subject_id: str,
        department: Department,
        decision: DecisionStatus,
    ) -> ApplyOutcome:
        """
        Record a department's decision in the subject snapshot.

        The most recent resolution simply overwrites the department's status.
        When the write completes the approval set for the first time,
        ``artifact_issued`` is flipped in the same critical section and the
        outcome reports ``issued_now`` so the caller fires issuance once,
        after commit.

        Raises:
            NotFoundError: If the subject does not exist
        """
        subject = self.registry.lock(subject_id)

        statuses = dict(subject.status_by_department or {})
        changed = []
        if statuses.get(department.value) != decision.value:
            changed.append(department)
        statuses[department.value] = decision.value
        subject.status_by_department = statuses

        issued_now = self._flip_if_cleared(subject)
        self.db.flush()

        logger.info(
            f"Subject {subject_id}: {department.value} -> {decision.value}"
            + (" (clearance complete)" if issued_now else "")
        )
        return ApplyOutcome(subject=subject, issued_now=issued_now, changed_departments=changed)

    def derive_statuses(self, subject_id: str) -> Dict[Department, DepartmentStatus]:
        """
        Recompute each department's status from the ledger.

        The most recently resolved request is authoritative. Departments
        with only pending requests, or none at all, are pending.
        """
        requests = (
            self.db.query(DecisionRequest)
            .filter(DecisionRequest.subject_id == subject_id)
            .all()
        )

        by_department: Dict[str, List[DecisionRequest]] = {}
        for request in requests:
            by_department.setdefault(request.department, []).append(request)

        view = {}
        for department in Department:
            entries = by_department.get(department.value, [])
            resolved = [r for r in entries if r.status != DecisionStatus.PENDING.value]
            if resolved:
                latest = max(resolved, key=lambda r: (r.resolved_at, r.created_at))
                view[department] = DepartmentStatus(department, DecisionStatus(latest.status), latest.id)
            elif entries:
                latest = max(entries, key=lambda r: r.created_at)
                view[department] = DepartmentStatus(
                    department, DecisionStatus.PENDING, latest.id, NOTE_AWAITING_DECISION
                )
            else:
                view[department] = DepartmentStatus(
                    department, DecisionStatus.PENDING, note=NOTE_NO_REQUEST
                )
        return view

    def status_view(self, subject_id: str) -> StatusView:
        """Build the status view served to status queries."""
        subject = self.registry.find(subject_id)
        return StatusView(
            subject_id=subject.id,
            name=subject.name,
            departments=self.derive_statuses(subject_id),
            artifact_issued=subject.artifact_issued,
            issued_at=subject.issued_at,
        )

    def check_consistency(self, subject_id: str) -> List[Department]:
        """Departments whose snapshot status disagrees with the ledger."""
        subject = self.registry.find(subject_id)
        snapshot = subject.status_by_department or {}
        derived = self.derive_statuses(subject_id)
        return [
            department
            for department, entry in derived.items()
            if snapshot.get(department.value) != entry.status.value
        ]

    def reconcile(self, subject_id: str) -> ApplyOutcome:
        """
        Rebuild the snapshot from the ledger and reapply the issuance rule.

        Raises:
            NotFoundError: If the subject does not exist
        """
        subject = self.registry.lock(subject_id)
        snapshot = subject.status_by_department or {}
        derived = self.derive_statuses(subject_id)

        statuses = {department.value: entry.status.value for department, entry in derived.items()}
        changed = [d for d in Department if snapshot.get(d.value) != statuses[d.value]]
        if changed:
            logger.warning(
                f"Subject {subject_id}: snapshot drifted from ledger for "
                f"{', '.join(d.value for d in changed)}; repairing"
            )
            subject.status_by_department = statuses

        if subject.artifact_issued and not is_fully_approved(statuses):
            logger.error(f"Subject {subject_id}: certificate issued but ledger is not fully approved")

        issued_now = self._flip_if_cleared(subject)
        self.db.flush()
        return ApplyOutcome(subject=subject, issued_now=issued_now, changed_departments=changed)

    def _flip_if_cleared(self, subject: Subject) -> bool:
        """Flip artifact_issued on the first fully approved snapshot."""
        if subject.artifact_issued or not is_fully_approved(subject.status_by_department):
            return False
        subject.artifact_issued = True
        subject.issued_at = utcnow()
        return True
