"""
Domain Layer - Core business entities and services for deliverable tracking.

This module contains:
- entities/: Immutable domain objects (Deliverable, Variation, DeliverableGate)
- services/: Domain services (EntityValidator, ProgressValidationService,
  VariationDeliverableReconciler, AutoIncrementAllocator)
"""

from .entities import (
    Deliverable, DeliverableType, Department, VariationStatus, UiStatus,
    DeliverableGate, Variation, ProgressUpdateRequest,
    ValidationRule, ValidationResult,
)

__all__ = [
    'Deliverable', 'DeliverableType', 'Department', 'VariationStatus', 'UiStatus',
    'DeliverableGate', 'Variation', 'ProgressUpdateRequest',
    'ValidationRule', 'ValidationResult',
]
