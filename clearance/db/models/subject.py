"""Subject model.

Holds the identity of a subject progressing through clearance and the
per-department status snapshot maintained by the aggregation engine.
"""

from sqlalchemy import Column, String, DateTime, JSON, Boolean
from sqlalchemy.orm import relationship

from clearance.db.base import Base, utcnow


class Subject(Base):
    """
    A subject (student) awaiting departmental clearance.

    ``status_by_department`` and ``artifact_issued`` are written only by the
    aggregation engine. The JSON mapping is always replaced, never mutated in
    place, so SQLAlchemy sees every change.
    """
    __tablename__ = "subjects"

    # Identity (immutable after registration)
    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    contact = Column(String(255), nullable=False)

    # Snapshot of per-department decisions
    status_by_department = Column(JSON, nullable=False, default=dict)

    # Certificate issuance
    artifact_issued = Column(Boolean, nullable=False, default=False)
    issued_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    requests = relationship(
        "DecisionRequest",
        back_populates="subject",
        order_by="DecisionRequest.created_at",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Subject {self.id} issued={self.artifact_issued}>"
