"""
Variation Deliverable API Endpoints - Deliverable lifecycle inside a variation.

Implements:
- GET /api/v1/variations/{guid}/deliverables - Variation view with ui_status
- POST /api/v1/variations/{guid}/deliverables - Add a deliverable to the variation
- PATCH /api/v1/variations/{guid}/deliverables/{deliverable_guid} - Edit variation hours
- GET /api/v1/variations/{guid}/deliverables/{deliverable_guid}/cancellation - Can it be cancelled
- POST /api/v1/variations/{guid}/deliverables/{deliverable_guid}/cancel - Cancel or remove
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from deliverable_tracker.config import get_config
from deliverable_tracker.models import get_db
from deliverable_tracker.infrastructure.repositories import DeliverableRepository, VariationRepository
from deliverable_tracker.domain.entities import Deliverable
from deliverable_tracker.domain.services import (
    EntityValidator,
    ReconciliationResult,
    VariationDeliverableReconciler,
    get_rules,
)
from deliverable_tracker.domain.exceptions import DomainError
from .errors import http_error, validation_error
from .schemas import DeliverableResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class VariationDeliverableCreate(BaseModel):
    """Request model for adding a deliverable to a variation."""
    area_number: Optional[str] = Field(None, description="Two-digit area number")
    discipline: Optional[str] = Field(None, description="Discipline code")
    document_type: Optional[str] = Field(None, description="Document type code")
    deliverable_type_id: Optional[str] = Field(None, description="Task, NonDeliverable, DeliverableICR or Deliverable")
    department_id: Optional[str] = Field(None, description="Owning department")
    document_title: Optional[str] = Field(None, description="Document title")
    client_document_number: Optional[str] = Field(None, description="Client's document number")
    budget_hours: float = Field(0.0, description="Budget hours")
    variation_hours: float = Field(0.0, description="Variation hours")


class VariationHoursUpdate(BaseModel):
    """Request model for editing variation hours."""
    variation_hours: float = Field(..., description="New variation hours")


class CancellationCheckResponse(BaseModel):
    can_cancel: bool
    message: str


class CancellationResponse(BaseModel):
    """Outcome of a cancellation; deliverable is empty when the row was removed."""
    action: str
    deliverable: Optional[DeliverableResponse] = None


# =============================================================================
# Helpers
# =============================================================================

def _reconciler(db: Session, variation_guid: str) -> VariationDeliverableReconciler:
    config = get_config()
    variation = VariationRepository(db).load(variation_guid)
    validator = EntityValidator(
        get_rules('variation_deliverable'),
        cell_edit_key_threshold=config.cell_edit_key_threshold,
    )
    return VariationDeliverableReconciler(
        DeliverableRepository(db),
        variation,
        validator=validator,
        always_read_only=config.always_read_only_fields,
    )


def _commit(db: Session, result: ReconciliationResult) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Conflicting write for %s; another copy already exists",
            result.plan.target_guid if result.plan else None
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The deliverable was changed concurrently; reload the variation and retry"
        )


# =============================================================================
# Endpoints
# =============================================================================

@router.get(
    "/{variation_guid}/deliverables",
    response_model=List[DeliverableResponse],
    summary="List deliverables as seen in a variation",
)
def list_variation_deliverables(variation_guid: str, db: Session = Depends(get_db)):
    try:
        reconciler = _reconciler(db, variation_guid)
    except DomainError as e:
        raise http_error(e)

    repo = DeliverableRepository(db)
    project_rows = [Deliverable.from_dict(r) for r in repo.get_by_project(reconciler.variation.project_guid)]
    variation_rows = [Deliverable.from_dict(r) for r in repo.get_by_variation(variation_guid)]
    view = reconciler.build_variation_view(project_rows, variation_rows)
    return [DeliverableResponse.from_entity(d) for d in view]


@router.post(
    "/{variation_guid}/deliverables",
    response_model=DeliverableResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a deliverable to a variation",
)
def add_variation_deliverable(
    variation_guid: str,
    body: VariationDeliverableCreate,
    db: Session = Depends(get_db),
):
    try:
        reconciler = _reconciler(db, variation_guid)
        data = {k: v for k, v in body.model_dump().items() if v is not None}
        result = reconciler.add_new_deliverable(data)
    except DomainError as e:
        raise http_error(e)

    if not result.is_valid:
        raise validation_error(result.validation)

    _commit(db, result)
    return DeliverableResponse.from_entity(result.deliverable)


@router.patch(
    "/{variation_guid}/deliverables/{deliverable_guid}",
    response_model=DeliverableResponse,
    summary="Edit variation hours",
    description="Editing an original deliverable creates or updates its variation copy."
)
def update_variation_hours(
    variation_guid: str,
    deliverable_guid: str,
    body: VariationHoursUpdate,
    db: Session = Depends(get_db),
):
    try:
        reconciler = _reconciler(db, variation_guid)
        row = DeliverableRepository(db).load(deliverable_guid)
        result = reconciler.update_variation_hours(row, body.variation_hours)
    except DomainError as e:
        raise http_error(e)

    if not result.is_valid:
        raise validation_error(result.validation)

    _commit(db, result)
    return DeliverableResponse.from_entity(result.deliverable)


@router.get(
    "/{variation_guid}/deliverables/{deliverable_guid}/cancellation",
    response_model=CancellationCheckResponse,
    summary="Check whether a deliverable can be cancelled",
)
def check_cancellation(variation_guid: str, deliverable_guid: str, db: Session = Depends(get_db)):
    try:
        reconciler = _reconciler(db, variation_guid)
        row = DeliverableRepository(db).load(deliverable_guid)
    except DomainError as e:
        raise http_error(e)

    can_cancel, message = reconciler.can_be_cancelled(row)
    return CancellationCheckResponse(can_cancel=can_cancel, message=message)


@router.post(
    "/{variation_guid}/deliverables/{deliverable_guid}/cancel",
    response_model=CancellationResponse,
    summary="Cancel a deliverable in a variation",
    description="Originals are flagged for cancellation, edits are reset, additions are removed."
)
def cancel_variation_deliverable(variation_guid: str, deliverable_guid: str, db: Session = Depends(get_db)):
    try:
        reconciler = _reconciler(db, variation_guid)
        row = DeliverableRepository(db).load(deliverable_guid)
        result = reconciler.cancel_deliverable(row)
    except DomainError as e:
        raise http_error(e)

    _commit(db, result)
    return CancellationResponse(
        action=result.plan.action.value,
        deliverable=DeliverableResponse.from_entity(result.deliverable) if result.deliverable else None,
    )
