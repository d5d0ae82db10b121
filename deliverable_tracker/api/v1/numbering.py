"""
Numbering API Endpoints - Next sequential number per scheme.

Implements:
- GET /api/v1/numbering/{scheme}/next - Next project, variation or area number

The number is a suggestion; uniqueness is enforced when the row is saved.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from deliverable_tracker.config import ConfigurationError, get_config
from deliverable_tracker.models import get_db
from deliverable_tracker.infrastructure.repositories import (
    AreaRepository,
    ProjectRepository,
    VariationRepository,
)
from deliverable_tracker.domain.services import AutoIncrementAllocator

router = APIRouter()

_SCHEME_REPOSITORIES = {
    'project': ProjectRepository,
    'variation': VariationRepository,
    'area': AreaRepository,
}


class NextNumberResponse(BaseModel):
    scheme: str
    field: str
    next_number: str


@router.get(
    "/{scheme}/next",
    response_model=NextNumberResponse,
    summary="Suggest the next number for a scheme",
)
def next_number(
    scheme: str,
    project_guid: Optional[str] = Query(None, description="Project scoping variation and area numbers"),
    db: Session = Depends(get_db),
):
    repository_class = _SCHEME_REPOSITORIES.get(scheme)
    if repository_class is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown numbering scheme: {scheme}")

    try:
        allocator = AutoIncrementAllocator.for_scheme(
            repository_class(db), scheme, get_config(), scope_value=project_guid
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return NextNumberResponse(scheme=scheme, field=allocator.field, next_number=allocator.refresh())
