"""
Domain Services - Validation, progress and variation lifecycle logic.
"""

from .entity_validation_service import EntityValidator, check_rule
from .validation_rules import RULE_SETS, get_rules
from .progress_validation_service import ProgressValidationService
from .progress_update_service import ProgressUpdateService, ProgressUpdateOutcome
from .variation_reconciler import (
    VariationDeliverableReconciler,
    ReconcileAction,
    ReconciliationPlan,
    ReconciliationResult,
)
from .auto_increment_service import AutoIncrementAllocator

__all__ = [
    'EntityValidator',
    'check_rule',
    'RULE_SETS',
    'get_rules',
    'ProgressValidationService',
    'ProgressUpdateService',
    'ProgressUpdateOutcome',
    'VariationDeliverableReconciler',
    'ReconcileAction',
    'ReconciliationPlan',
    'ReconciliationResult',
    'AutoIncrementAllocator',
]
