"""Exception handlers mapping clearance errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from clearance.api.schemas.common import ErrorResponse
from clearance.core.exceptions import (
    AlreadyResolvedError,
    ClearanceCompletedError,
    ClearanceError,
    DuplicateSubjectError,
    GenerationFailedError,
    InvalidDecisionError,
    InvalidDepartmentError,
    NotFoundError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type, int] = {
    NotFoundError: 404,
    DuplicateSubjectError: 409,
    AlreadyResolvedError: 409,
    ClearanceCompletedError: 409,
    InvalidDepartmentError: 422,
    InvalidDecisionError: 422,
    UnauthorizedError: 401,
    GenerationFailedError: 502,
}


def status_for(exc: ClearanceError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def _clearance_exception_handler(request: Request, exc: ClearanceError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    body = ErrorResponse(error=exc.message, detail=exc.detail, code=exc.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClearanceError, _clearance_exception_handler)
