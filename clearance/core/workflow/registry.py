"""Subject registry.

Creates and looks up subjects. Status changes are deliberately absent here:
the aggregation engine is the only writer of a subject's snapshot.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clearance.core.exceptions import DuplicateSubjectError, NotFoundError
from clearance.db.models import Subject
from .states import initial_statuses

logger = logging.getLogger(__name__)


class SubjectRegistry:
    """Registration and lookup of subjects within a database session."""

    def __init__(self, db: Session):
        self.db = db

    def register(self, subject_id: str, name: str, contact: str) -> Subject:
        """
        Register a new subject with every department pending.

        Raises:
            DuplicateSubjectError: If the identity is already registered
        """
        if self.db.get(Subject, subject_id) is not None:
            raise DuplicateSubjectError(f"Subject {subject_id} already exists")

        subject = Subject(
            id=subject_id,
            name=name,
            contact=contact,
            status_by_department=initial_statuses(),
            artifact_issued=False,
        )
        self.db.add(subject)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same identity
            self.db.rollback()
            raise DuplicateSubjectError(f"Subject {subject_id} already exists")

        logger.info(f"Registered subject {subject_id}")
        return subject

    def find(self, subject_id: str) -> Subject:
        """Get a subject by identity or raise NotFoundError."""
        subject = self.db.get(Subject, subject_id)
        if subject is None:
            raise NotFoundError(f"Subject {subject_id} not found")
        return subject

    def lock(self, subject_id: str) -> Subject:
        """
        Load a subject with an exclusive row lock held until the transaction ends.

        This is the per-subject critical section: every snapshot mutation
        happens while holding it.
        """
        subject = (
            self.db.query(Subject)
            .filter(Subject.id == subject_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if subject is None:
            raise NotFoundError(f"Subject {subject_id} not found")
        return subject
