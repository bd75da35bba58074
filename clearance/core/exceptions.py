"""Error taxonomy for the clearance workflow.

Core errors are raised synchronously to the caller and never retried.
``UnauthorizedError`` belongs to the authentication boundary and
``GenerationFailedError`` to the certificate generator; neither is raised by
the state machine itself.
"""

from typing import Optional


class ClearanceError(Exception):
    """Base class for all clearance errors."""

    code = "clearance_error"

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class NotFoundError(ClearanceError):
    """Raised when a subject or decision request does not exist."""

    code = "not_found"


class DuplicateSubjectError(ClearanceError):
    """Raised when registering an identity that already exists."""

    code = "duplicate_subject"


class InvalidDepartmentError(ClearanceError):
    """Raised when a department is not one of the approving departments."""

    code = "invalid_department"


class InvalidDecisionError(ClearanceError):
    """Raised when a decision is neither approved nor rejected."""

    code = "invalid_decision"


class AlreadyResolvedError(ClearanceError):
    """Raised when resolving a request that is no longer pending."""

    code = "already_resolved"

    def __init__(self, request_id, current_status: str):
        super().__init__(
            f"Decision request {request_id} is already {current_status}"
        )
        self.request_id = request_id
        self.current_status = current_status


class ClearanceCompletedError(ClearanceError):
    """Raised when changing decisions for a subject whose certificate was issued."""

    code = "clearance_completed"


class UnauthorizedError(ClearanceError):
    """Raised by the authenticator when credentials cannot be verified."""

    code = "unauthorized"


class GenerationFailedError(ClearanceError):
    """Raised by a certificate generator that could not produce the artifact."""

    code = "generation_failed"
