"""
Gate API Endpoints - Deliverable gate reference data.

Implements:
- GET /api/v1/gates - List gates ordered by ceiling
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from deliverable_tracker.models import get_db
from deliverable_tracker.infrastructure.repositories import DeliverableGateRepository

router = APIRouter()


class GateResponse(BaseModel):
    guid: str
    name: str
    max_percentage: float
    auto_percentage: Optional[float] = None


@router.get("", response_model=List[GateResponse], summary="List deliverable gates")
def list_gates(db: Session = Depends(get_db)):
    return [GateResponse(**g.to_dict()) for g in DeliverableGateRepository(db).list_gates()]
