"""Database models for the clearance service."""

from clearance.db.models.subject import Subject
from clearance.db.models.decision_request import DecisionRequest

__all__ = [
    "Subject",
    "DecisionRequest",
]
