"""Decision request model.

One row per clearance ask sent by a subject to a department. Rows are
resolved once and never deleted, so the table doubles as the decision ledger.
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid, Index
from sqlalchemy.orm import relationship

from clearance.db.base import Base, utcnow


class DecisionRequest(Base):
    """
    A single (subject, department) approval request.

    Moves from ``pending`` to ``approved`` or ``rejected`` exactly once.
    """
    __tablename__ = "decision_requests"
    __table_args__ = (
        Index("ix_decision_requests_subject_department", "subject_id", "department"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject_id = Column(String(100), ForeignKey("subjects.id"), nullable=False, index=True)
    department = Column(String(50), nullable=False, index=True)

    # Workflow state
    status = Column(String(20), nullable=False, default="pending", index=True)

    # Resolution tracking
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, index=True)

    # Relationships
    subject = relationship("Subject", back_populates="requests")

    def __repr__(self) -> str:
        return f"<DecisionRequest {self.subject_id}/{self.department} [{self.status}]>"
