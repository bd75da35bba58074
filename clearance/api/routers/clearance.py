"""Clearance workflow API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from clearance.api.deps import get_clearance_service, get_current_subject_id, require_admin
from clearance.api.schemas.clearance import (
    DecisionAction,
    DecisionRequestResponse,
    QrCodeResponse,
    ReconcileResponse,
    RegisterSubject,
    ResolutionResponse,
    StatusResponse,
    SubjectResponse,
    SubmitRequest,
)
from clearance.api.schemas.common import PaginatedResponse
from clearance.services.clearance import ClearanceService

router = APIRouter(prefix="/clearance", tags=["clearance"])


# Subject endpoints

@router.post("/register", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
def register_subject(
    body: RegisterSubject,
    service: ClearanceService = Depends(get_clearance_service),
):
    """Register a subject; every department starts pending."""
    subject = service.register(body.subject_id, body.name, body.contact)
    return SubjectResponse.model_validate(subject)


@router.post("/requests", response_model=DecisionRequestResponse, status_code=status.HTTP_201_CREATED)
def submit_request(
    body: SubmitRequest,
    response: Response,
    subject_id: str = Depends(get_current_subject_id),
    service: ClearanceService = Depends(get_clearance_service),
):
    """Request clearance from a department for the authenticated subject."""
    submission = service.submit(subject_id, body.department)
    if not submission.created:
        response.status_code = status.HTTP_200_OK
    return DecisionRequestResponse.model_validate(submission.request)


@router.get("/me/status", response_model=StatusResponse)
def my_status(
    subject_id: str = Depends(get_current_subject_id),
    service: ClearanceService = Depends(get_clearance_service),
):
    return StatusResponse.from_view(service.status(subject_id))


@router.get("/me/requests", response_model=List[DecisionRequestResponse])
def my_requests(
    subject_id: str = Depends(get_current_subject_id),
    service: ClearanceService = Depends(get_clearance_service),
):
    return [DecisionRequestResponse.model_validate(r) for r in service.list_by_subject(subject_id)]


@router.get("/me/qr", response_model=QrCodeResponse)
def my_qr_code(
    subject_id: str = Depends(get_current_subject_id),
    service: ClearanceService = Depends(get_clearance_service),
):
    """Scannable identity code for the authenticated subject."""
    return QrCodeResponse(qr_code=service.identity_code(subject_id))


# Administrative endpoints

@router.put(
    "/requests/{request_id}/decision",
    response_model=ResolutionResponse,
    dependencies=[Depends(require_admin)],
)
def resolve_request(
    request_id: str,
    action: DecisionAction,
    service: ClearanceService = Depends(get_clearance_service),
):
    """Approve or reject a pending request."""
    resolution = service.resolve(
        request_id,
        action.decision,
        resolved_by=action.resolved_by,
        comment=action.comment,
    )
    return ResolutionResponse(
        request=DecisionRequestResponse.model_validate(resolution.request),
        subject=SubjectResponse.model_validate(resolution.outcome.subject),
        certificate_triggered=resolution.issued_now,
        artifact=resolution.artifact,
    )


@router.get(
    "/requests",
    response_model=PaginatedResponse[DecisionRequestResponse],
    dependencies=[Depends(require_admin)],
)
def list_requests(
    service: ClearanceService = Depends(get_clearance_service),
    department: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """List requests, optionally filtered by department and status."""
    items, total = service.list_requests(
        department=department,
        status=status_filter,
        limit=per_page,
        offset=(page - 1) * per_page,
    )
    return PaginatedResponse[DecisionRequestResponse].create(
        items=[DecisionRequestResponse.model_validate(r) for r in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/status/{subject_id}",
    response_model=StatusResponse,
    dependencies=[Depends(require_admin)],
)
def subject_status(
    subject_id: str,
    service: ClearanceService = Depends(get_clearance_service),
):
    return StatusResponse.from_view(service.status(subject_id))


@router.get(
    "/subjects/{subject_id}/requests",
    response_model=List[DecisionRequestResponse],
    dependencies=[Depends(require_admin)],
)
def subject_requests(
    subject_id: str,
    service: ClearanceService = Depends(get_clearance_service),
):
    return [DecisionRequestResponse.model_validate(r) for r in service.list_by_subject(subject_id)]


@router.post(
    "/subjects/{subject_id}/reconcile",
    response_model=ReconcileResponse,
    dependencies=[Depends(require_admin)],
)
def reconcile_subject(
    subject_id: str,
    service: ClearanceService = Depends(get_clearance_service),
):
    """Rebuild a subject's status snapshot from its decision requests."""
    outcome = service.reconcile(subject_id)
    return ReconcileResponse(
        subject=SubjectResponse.model_validate(outcome.subject),
        repaired_departments=[d.value for d in outcome.changed_departments],
        certificate_triggered=outcome.issued_now,
    )
