"""
Domain Entities - Core immutable business objects.
"""

from .deliverable import (
    Deliverable, DeliverableType, Department, VariationStatus, UiStatus,
    SERVER_CALCULATED_FIELDS,
)
from .deliverable_gate import DeliverableGate, same_guid, normalize_guid
from .variation import Variation
from .progress import ProgressUpdateRequest, progress_date_for_period
from .validation import ValidationRule, ValidationResult

__all__ = [
    'Deliverable', 'DeliverableType', 'Department', 'VariationStatus', 'UiStatus',
    'SERVER_CALCULATED_FIELDS',
    'DeliverableGate', 'same_guid', 'normalize_guid',
    'Variation',
    'ProgressUpdateRequest', 'progress_date_for_period',
    'ValidationRule', 'ValidationResult',
]
