"""
Translation of domain errors to HTTP responses.
"""
from fastapi import HTTPException, status

from deliverable_tracker.domain.entities import ValidationResult
from deliverable_tracker.domain.exceptions import (
    ApprovedDeliverableError,
    DeliverableNotFoundError,
    DomainError,
    GateNotFoundError,
    InvalidStateTransitionError,
    ProjectNotFoundError,
    VariationLockedError,
    VariationNotFoundError,
)

_NOT_FOUND = (
    DeliverableNotFoundError,
    VariationNotFoundError,
    ProjectNotFoundError,
    GateNotFoundError,
)
_CONFLICT = (
    VariationLockedError,
    ApprovedDeliverableError,
    InvalidStateTransitionError,
)


def http_error(error: DomainError) -> HTTPException:
    """Map a domain error to 404, 409 or 400."""
    if isinstance(error, _NOT_FOUND):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, _CONFLICT):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"code": error.code, "message": error.message})


def validation_error(result: ValidationResult) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"errors": result.errors},
    )
