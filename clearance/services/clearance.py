"""Clearance service.

Provides the request surface of the workflow: each operation runs in its own
unit of work, and collaborator side effects (notifications, certificate
issuance) run only after the state change has committed.
"""

import logging
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from clearance.core.config import Settings
from clearance.core.workflow import (
    AggregationEngine,
    ApplyOutcome,
    DecisionLedger,
    DecisionStatus,
    Department,
    IssuanceTrigger,
    Resolution,
    StatusView,
    SubjectRegistry,
    Submission,
)
from clearance.db.models import DecisionRequest, Subject
from clearance.db.session import session_scope
from clearance.services.certificates import ArtifactGenerator, HtmlCertificateGenerator
from clearance.services.dispatch import CollaboratorPool
from clearance.services.notifications import (
    ClearanceEvent,
    ClearanceNotifications,
    Notifier,
    build_notifier,
)
from clearance.services.qrcodes import (
    QrCodeGenerator,
    ScannableCodeGenerator,
    identity_payload,
    to_data_url,
)

logger = logging.getLogger(__name__)


class ClearanceService:
    """
    High-level service for the clearance workflow.

    Handles:
    - Subject registration and lookup
    - Submitting and resolving decision requests
    - Status queries and administrative listings
    - Snapshot consistency checks and repair
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        issuance: IssuanceTrigger,
        notifications: ClearanceNotifications,
        code_generator: Optional[ScannableCodeGenerator] = None,
    ):
        self.session_factory = session_factory
        self.issuance = issuance
        self.notifications = notifications
        self.code_generator = code_generator or QrCodeGenerator()

    # Subjects

    def register(self, subject_id: str, name: str, contact: str) -> Subject:
        with session_scope(self.session_factory) as db:
            return SubjectRegistry(db).register(subject_id, name, contact)

    def find(self, subject_id: str) -> Subject:
        with session_scope(self.session_factory, read_only=True) as db:
            return SubjectRegistry(db).find(subject_id)

    # Decision requests

    def submit(self, subject_id: str, department: Union[str, Department]) -> Submission:
        """Submit a request and notify the subject when a new one was created."""
        with session_scope(self.session_factory) as db:
            submission = DecisionLedger(db).submit(subject_id, department)
            subject = SubjectRegistry(db).find(subject_id)

        if submission.created:
            self.notifications.send(
                ClearanceEvent.REQUEST_SUBMITTED,
                subject.contact,
                {
                    "name": subject.name,
                    "department": submission.request.department,
                    "request_id": str(submission.request.id),
                },
            )
        return submission

    def resolve(
        self,
        request_id: Union[str, UUID],
        decision: Union[str, DecisionStatus],
        *,
        resolved_by: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> Resolution:
        """
        Resolve a request; fire issuance once if it completed the approval set.
        """
        with session_scope(self.session_factory) as db:
            resolution = DecisionLedger(db).resolve(
                request_id, decision, resolved_by=resolved_by, comment=comment
            )

        subject = resolution.outcome.subject
        request = resolution.request
        event = (
            ClearanceEvent.DECISION_APPROVED
            if request.status == DecisionStatus.APPROVED.value
            else ClearanceEvent.DECISION_REJECTED
        )
        self.notifications.send(
            event,
            subject.contact,
            {"name": subject.name, "department": request.department, "comment": comment or "No reason provided"},
        )

        if resolution.issued_now:
            resolution.artifact = self.issuance.on_fully_approved(subject)
        return resolution

    def get_request(self, request_id: Union[str, UUID]) -> DecisionRequest:
        with session_scope(self.session_factory, read_only=True) as db:
            return DecisionLedger(db).get(request_id)

    def list_by_subject(self, subject_id: str) -> List[DecisionRequest]:
        with session_scope(self.session_factory, read_only=True) as db:
            return DecisionLedger(db).list_by_subject(subject_id)

    def list_by_department(
        self,
        department: Union[str, Department],
        status: Optional[Union[str, DecisionStatus]] = None,
    ) -> List[DecisionRequest]:
        with session_scope(self.session_factory, read_only=True) as db:
            return DecisionLedger(db).list_by_department(department, status)

    def list_requests(
        self,
        *,
        department: Optional[Union[str, Department]] = None,
        status: Optional[Union[str, DecisionStatus]] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> Tuple[List[DecisionRequest], int]:
        with session_scope(self.session_factory, read_only=True) as db:
            return DecisionLedger(db).list_requests(
                department=department, status=status, limit=limit, offset=offset
            )

    # Status

    def status(self, subject_id: str) -> StatusView:
        with session_scope(self.session_factory, read_only=True) as db:
            return AggregationEngine(db).status_view(subject_id)

    def check_consistency(self, subject_id: str) -> List[Department]:
        with session_scope(self.session_factory, read_only=True) as db:
            return AggregationEngine(db).check_consistency(subject_id)

    def reconcile(self, subject_id: str) -> ApplyOutcome:
        """Repair the snapshot from the ledger; issues the certificate if that completes it."""
        with session_scope(self.session_factory) as db:
            outcome = AggregationEngine(db).reconcile(subject_id)

        if outcome.issued_now:
            self.issuance.on_fully_approved(outcome.subject)
        return outcome

    def identity_code(self, subject_id: str) -> str:
        """Scannable identity code for a subject, as a data URL."""
        subject = self.find(subject_id)
        image = self.code_generator.encode(identity_payload(subject.id))
        return to_data_url(image, self.code_generator.media_type)


def build_clearance_service(
    settings: Settings,
    session_factory: sessionmaker,
    *,
    notifier: Optional[Notifier] = None,
    generator: Optional[ArtifactGenerator] = None,
    code_generator: Optional[ScannableCodeGenerator] = None,
    pool: Optional[CollaboratorPool] = None,
) -> ClearanceService:
    """Wire the service with collaborators from settings unless given explicitly."""
    pool = pool or CollaboratorPool(
        timeout=settings.collaborator_timeout,
        max_workers=settings.collaborator_workers,
    )
    notifications = ClearanceNotifications(notifier or build_notifier(settings), pool)
    issuance = IssuanceTrigger(
        generator or HtmlCertificateGenerator(settings.certificate_dir),
        pool,
        notifications,
    )
    return ClearanceService(session_factory, issuance, notifications, code_generator)
