"""
Pydantic models shared by the v1 endpoints.
"""
from datetime import date
from typing import Dict, Optional

from pydantic import BaseModel, Field

from deliverable_tracker.domain.entities import Deliverable, ValidationResult


class ValidationResponse(BaseModel):
    """Field-keyed validation outcome."""
    is_valid: bool
    errors: Dict[str, str] = Field(default_factory=dict)
    field: Optional[str] = None
    error_text: Optional[str] = None

    @classmethod
    def from_result(cls, result: ValidationResult) -> 'ValidationResponse':
        return cls(**result.to_dict())


class DeliverableResponse(BaseModel):
    """Deliverable row as returned to clients."""
    guid: str
    project_guid: Optional[str] = None
    area_number: Optional[str] = None
    discipline: Optional[str] = None
    document_type: Optional[str] = None
    deliverable_type_id: Optional[str] = None
    department_id: Optional[str] = None
    document_title: Optional[str] = None
    client_document_number: Optional[str] = None
    internal_document_number: Optional[str] = None
    booking_code: Optional[str] = None
    project_number: Optional[str] = None
    client_number: Optional[str] = None
    total_hours: float = 0.0
    budget_hours: float = 0.0
    variation_hours: float = 0.0
    deliverable_gate_guid: Optional[str] = None
    cumulative_earnt_percentage: float = 0.0
    previous_period_earnt_percentage: float = 0.0
    future_period_earnt_percentage: float = 0.0
    variation_guid: Optional[str] = None
    original_deliverable_guid: Optional[str] = None
    variation_status: Optional[str] = None
    ui_status: Optional[str] = None

    @classmethod
    def from_entity(cls, deliverable: Deliverable) -> 'DeliverableResponse':
        return cls(**deliverable.to_dict())


class ProgressUpdateBody(BaseModel):
    """Request model for validating or applying a progress change."""
    deliverable_guid: str = Field(..., description="Deliverable being reported")
    period: int = Field(..., description="Reporting period index")
    progress_date: Optional[date] = Field(None, description="Date of the reporting period")
    deliverable_gate_guid: Optional[str] = Field(None, description="New gate, if changing")
    cumulative_earnt_percentage: Optional[float] = Field(None, description="New cumulative progress (0..1)")
