"""
Progress API Endpoints - Gate and cumulative progress changes.

Implements:
- GET /api/v1/progress/{deliverable_guid}?period=N - Deliverable as of a period
- POST /api/v1/progress/validate - Validate a change without writing
- POST /api/v1/progress - Validate and apply a change (gate first, then progress)
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from deliverable_tracker.models import get_db
from deliverable_tracker.infrastructure.repositories import (
    DeliverableGateRepository,
    DeliverableRepository,
    ProgressRepository,
    ProjectRepository,
)
from deliverable_tracker.domain.services import ProgressUpdateService, ProgressValidationService
from deliverable_tracker.domain.exceptions import DomainError
from .errors import http_error, validation_error
from .schemas import DeliverableResponse, ProgressUpdateBody, ValidationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class ProgressUpdateResponse(BaseModel):
    """Outcome of an applied progress change."""
    deliverable: DeliverableResponse
    gate_updated: bool
    progress_posted: bool
    recommended_percentage: Optional[float] = None
    progress_date: Optional[date] = None


def _changes(body: ProgressUpdateBody) -> dict:
    """Only the fields the client actually sent count as changed."""
    sent = body.model_dump(exclude_unset=True)
    return {
        key: sent[key]
        for key in ('deliverable_gate_guid', 'cumulative_earnt_percentage')
        if key in sent
    }


# =============================================================================
# Endpoints
# =============================================================================

@router.get(
    "/{deliverable_guid}",
    response_model=DeliverableResponse,
    summary="Get deliverable progress for a period",
)
def get_progress(
    deliverable_guid: str,
    period: int = Query(..., ge=0, description="Reporting period index"),
    db: Session = Depends(get_db),
):
    try:
        deliverable = DeliverableRepository(db).load_for_period(deliverable_guid, period)
    except DomainError as e:
        raise http_error(e)
    return DeliverableResponse.from_entity(deliverable)


@router.post(
    "/validate",
    response_model=ValidationResponse,
    summary="Validate a progress change",
    description="Checks range, gate ceiling and period monotonicity without writing."
)
def validate_progress(body: ProgressUpdateBody, db: Session = Depends(get_db)):
    try:
        deliverable = DeliverableRepository(db).load_for_period(body.deliverable_guid, max(body.period, 0))
    except DomainError as e:
        raise http_error(e)

    validator = ProgressValidationService(DeliverableGateRepository(db).list_gates())
    service = ProgressUpdateService(ProgressRepository(db), validator)
    return ValidationResponse.from_result(service.validate(deliverable, _changes(body), body.period))


@router.post(
    "",
    response_model=ProgressUpdateResponse,
    summary="Apply a progress change",
    description="Validates, then writes the gate before the cumulative percentage."
)
def update_progress(body: ProgressUpdateBody, db: Session = Depends(get_db)):
    deliverables = DeliverableRepository(db)
    try:
        deliverable = deliverables.load_for_period(body.deliverable_guid, max(body.period, 0))
    except DomainError as e:
        raise http_error(e)

    validator = ProgressValidationService(DeliverableGateRepository(db).list_gates())
    service = ProgressUpdateService(ProgressRepository(db), validator)

    try:
        outcome = service.process_update(
            deliverable,
            _changes(body),
            body.period,
            body.progress_date,
            progress_start=ProjectRepository(db).progress_start(deliverable.project_guid),
        )
        if not outcome.is_valid:
            raise validation_error(outcome.validation)
        db.commit()
    except DomainError as e:
        db.rollback()
        raise http_error(e)

    return ProgressUpdateResponse(
        deliverable=DeliverableResponse.from_entity(
            deliverables.load_for_period(deliverable.guid, body.period)
        ),
        gate_updated=outcome.gate_updated,
        progress_posted=outcome.progress_posted,
        recommended_percentage=outcome.recommended_percentage,
        progress_date=outcome.request.progress_date if outcome.request else None,
    )
