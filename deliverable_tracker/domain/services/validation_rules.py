"""
Default validation rule sets per entity kind.

Callers may pass their own rules to EntityValidator; these are the rule
sets the API and CLI use.
"""
from typing import Dict, List

from deliverable_tracker.domain.entities import ValidationRule


DELIVERABLE_VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule(
        field='area_number',
        required=True,
        max_length=2,
        pattern=r'^[0-9][0-9]$',
        error_text='Area Number must be exactly 2 digits (00-99)',
    ),
    ValidationRule(field='discipline', required=True, error_text='Discipline is required'),
    ValidationRule(field='document_type', required=True, error_text='Document Type is required'),
    ValidationRule(field='deliverable_type_id', required=True, error_text='Deliverable Type is required'),
    ValidationRule(
        field='document_title',
        required=True,
        max_length=500,
        error_text='Document Title is required and must be at most 500 characters',
    ),
    ValidationRule(field='budget_hours', min=0, error_text='Budget Hours cannot be negative'),
]

VARIATION_DELIVERABLE_VALIDATION_RULES: List[ValidationRule] = DELIVERABLE_VALIDATION_RULES + [
    ValidationRule(
        field='variation_hours',
        required=True,
        min=0,
        error_text='Variation Hours must be zero or more',
    ),
]

VARIATION_VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule(
        field='name',
        required=True,
        max_length=500,
        error_text='Name is required and must be less than 500 characters',
    ),
    ValidationRule(
        field='comments',
        max_length=1000,
        error_text='Comments must be less than 1000 characters',
    ),
]

PROJECT_VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule(field='project_number', required=True, max_length=50, error_text='Project Number is required'),
    ValidationRule(
        field='name',
        required=True,
        max_length=200,
        error_text='Project Name is required and must be at most 200 characters',
    ),
    ValidationRule(field='project_status', required=True, error_text='Project Status is required'),
    ValidationRule(field='client_number', required=True, error_text='Client is required'),
]

AREA_VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule(
        field='number',
        required=True,
        pattern=r'^\d{2}$',
        error_text='Area Number must be exactly 2 digits (00-99)',
    ),
    ValidationRule(
        field='description',
        required=True,
        max_length=100,
        error_text='Description is required and must be less than 100 characters',
    ),
]

DISCIPLINE_VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule(
        field='code',
        required=True,
        max_length=2,
        pattern=r'^[A-Z][A-Z]$',
        error_text='Code must be exactly 2 uppercase letters',
    ),
    ValidationRule(field='name', max_length=500, error_text='Name cannot exceed 500 characters'),
]

DOCUMENT_TYPE_VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule(
        field='code',
        required=True,
        max_length=3,
        pattern=r'^[A-Z]{1,3}$',
        error_text='Code must be 1-3 uppercase letters',
    ),
    ValidationRule(field='name', max_length=500, error_text='Name cannot exceed 500 characters'),
]

CLIENT_VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule(field='number', required=True, max_length=3, error_text='Client Number must be at most 3 characters'),
    ValidationRule(field='description', max_length=500, error_text='Description must be at most 500 characters'),
    ValidationRule(field='client_contact_name', max_length=500, error_text='Contact Name must be at most 500 characters'),
    ValidationRule(field='client_contact_number', max_length=100, error_text='Contact Phone must be at most 100 characters'),
    ValidationRule(
        field='client_contact_email',
        max_length=100,
        pattern=r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$',
        error_text='Please enter a valid email address',
    ),
]

RULE_SETS: Dict[str, List[ValidationRule]] = {
    'deliverable': DELIVERABLE_VALIDATION_RULES,
    'variation_deliverable': VARIATION_DELIVERABLE_VALIDATION_RULES,
    'variation': VARIATION_VALIDATION_RULES,
    'project': PROJECT_VALIDATION_RULES,
    'area': AREA_VALIDATION_RULES,
    'discipline': DISCIPLINE_VALIDATION_RULES,
    'document_type': DOCUMENT_TYPE_VALIDATION_RULES,
    'client': CLIENT_VALIDATION_RULES,
}


def get_rules(kind: str) -> List[ValidationRule]:
    """
    Get the default rule set for an entity kind.

    Raises:
        KeyError: If no rule set exists for the kind
    """
    if kind not in RULE_SETS:
        raise KeyError(f"No validation rules for entity kind '{kind}'")
    return list(RULE_SETS[kind])
