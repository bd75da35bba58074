"""Schemas for the clearance endpoints."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from clearance.core.workflow import StatusView


class RegisterSubject(BaseModel):
    subject_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    contact: str = Field(..., min_length=3, max_length=255, description="Email address")


class SubjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    contact: str
    status_by_department: Dict[str, str]
    artifact_issued: bool
    issued_at: Optional[datetime] = None
    created_at: datetime


class SubmitRequest(BaseModel):
    # Validated by the ledger so unknown names map to InvalidDepartmentError
    department: str


class DecisionRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subject_id: str
    department: str
    status: str
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    comment: Optional[str] = None


class DecisionAction(BaseModel):
    decision: str
    resolved_by: Optional[str] = Field(None, max_length=255)
    comment: Optional[str] = None


class ResolutionResponse(BaseModel):
    request: DecisionRequestResponse
    subject: SubjectResponse
    certificate_triggered: bool
    artifact: Optional[str] = None


class DepartmentStatusResponse(BaseModel):
    status: str
    request_id: Optional[UUID] = None
    note: Optional[str] = None


class StatusResponse(BaseModel):
    subject_id: str
    name: str
    departments: Dict[str, DepartmentStatusResponse]
    artifact_issued: bool
    issued_at: Optional[datetime] = None

    @classmethod
    def from_view(cls, view: StatusView) -> "StatusResponse":
        return cls(
            subject_id=view.subject_id,
            name=view.name,
            departments={
                department.value: DepartmentStatusResponse(
                    status=entry.status.value,
                    request_id=entry.request_id,
                    note=entry.note,
                )
                for department, entry in view.departments.items()
            },
            artifact_issued=view.artifact_issued,
            issued_at=view.issued_at,
        )


class QrCodeResponse(BaseModel):
    qr_code: str


class ReconcileResponse(BaseModel):
    subject: SubjectResponse
    repaired_departments: List[str]
    certificate_triggered: bool
