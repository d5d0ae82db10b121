"""
Entity Validation Service - Rule-driven field validation.

Validates entities (deliverables, variations, projects, ...) against an
ordered list of ValidationRule. Supports:
- Full validation of an inserted or fully edited row
- Partial validation of a single-cell edit, reporting only the edited fields
- The legacy single-error form that stops at the first failing rule

Results are returned, never raised.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from deliverable_tracker.domain.entities import ValidationResult, ValidationRule

logger = logging.getLogger(__name__)

DEFAULT_CELL_EDIT_KEY_THRESHOLD = 5

CustomValidator = Callable[[Mapping[str, Any]], ValidationResult]


def as_mapping(entity: Any) -> Dict[str, Any]:
    """Accept a mapping or an entity exposing to_dict()."""
    if entity is None:
        return {}
    if isinstance(entity, Mapping):
        return dict(entity)
    if hasattr(entity, 'to_dict'):
        return entity.to_dict()
    raise TypeError(f"Cannot validate object of type {type(entity).__name__}")


def _is_empty(value: Any) -> bool:
    return value is None or value == ''


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def check_rule(rule: ValidationRule, value: Any) -> Optional[str]:
    """
    Evaluate one rule against one value.

    Returns:
        Error message for the first failing check, or None if the value passes
    """
    if _is_empty(value):
        if rule.required:
            return rule.error_text or f"{rule.field} is required"
        return None

    text = str(value)

    regex = rule.regex
    if regex is not None and not regex.search(text):
        return rule.error_text or f"{rule.field} format is invalid"

    if rule.max_length is not None and len(text) > rule.max_length:
        return rule.error_text or f"{rule.field} must be at most {rule.max_length} characters"

    if rule.min_length is not None and len(text) < rule.min_length:
        return rule.error_text or f"{rule.field} must be at least {rule.min_length} characters"

    # Bounds only apply to values that parse as numbers
    number = _as_float(value)
    if number is not None:
        if rule.min is not None and number < rule.min:
            return rule.error_text or f"{rule.field} must be at least {rule.min}"
        if rule.max is not None and number > rule.max:
            return rule.error_text or f"{rule.field} must be at most {rule.max}"

    return None


class EntityValidator:
    """
    Validates entities against an ordered rule set.

    The first failing check of a rule wins for that rule; other fields are
    still evaluated. When several rules target the same field, the first
    failing rule's message is kept.
    """

    def __init__(
        self,
        rules: Sequence[ValidationRule],
        custom_validator: Optional[CustomValidator] = None,
        cell_edit_key_threshold: int = DEFAULT_CELL_EDIT_KEY_THRESHOLD,
    ):
        self.rules: List[ValidationRule] = list(rules)
        self.custom_validator = custom_validator
        self.cell_edit_key_threshold = cell_edit_key_threshold

    # =========================================================================
    # Full Validation
    # =========================================================================

    def validate_entity(self, entity: Any) -> ValidationResult:
        """
        Validate every rule against the entity.

        A missing required field fails even if the caller never touched it.

        Args:
            entity: Mapping or entity with to_dict()

        Returns:
            ValidationResult with errors keyed by field
        """
        data = as_mapping(entity)

        if self.custom_validator is not None:
            custom_result = self.custom_validator(data)
            if not custom_result.is_valid:
                return custom_result

        errors: Dict[str, str] = {}
        for rule in self.rules:
            if rule.field in errors:
                continue
            message = check_rule(rule, data.get(rule.field))
            if message is not None:
                errors[rule.field] = message

        return ValidationResult(is_valid=not errors, errors=errors)

    # =========================================================================
    # Row Update Validation
    # =========================================================================

    def is_cell_edit(self, old_data: Any, new_data: Mapping[str, Any]) -> bool:
        """Guess whether a delta is a single-cell edit from its size."""
        return bool(old_data) and len(new_data) < self.cell_edit_key_threshold

    def validate_row_update(
        self,
        old_data: Any,
        new_data: Mapping[str, Any],
        changed_fields: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """
        Validate a change merged over its baseline.

        Partial mode reports only failures on the changed fields, so editing
        one cell does not flag unrelated required fields. It applies when
        changed_fields is given, or else when the delta looks like a cell edit.

        Args:
            old_data: Baseline row (mapping, entity or None for inserts)
            new_data: Delta of changed values
            changed_fields: Fields the caller knows were edited

        Returns:
            ValidationResult
        """
        baseline = as_mapping(old_data)
        delta = as_mapping(new_data)
        merged = {**baseline, **delta}

        if changed_fields is None and self.is_cell_edit(baseline, delta):
            changed_fields = delta.keys()

        result = self.validate_entity(merged)
        if changed_fields is None or result.is_valid:
            return result

        edited = set(changed_fields)
        relevant = {f: msg for f, msg in result.errors.items() if f in edited}
        if relevant:
            logger.debug("Cell edit rejected on fields %s", sorted(relevant))
        return ValidationResult(is_valid=not relevant, errors=relevant)

    # =========================================================================
    # Legacy Single-Error Form
    # =========================================================================

    def first_error(self, new_data: Mapping[str, Any], old_data: Any = None) -> ValidationResult:
        """
        Stop at the first failing rule in declaration order.

        Values come from new_data when present there, otherwise old_data.
        """
        delta = as_mapping(new_data)
        baseline = as_mapping(old_data)

        for rule in self.rules:
            value = delta[rule.field] if rule.field in delta else baseline.get(rule.field)
            message = check_rule(rule, value)
            if message is not None:
                return ValidationResult.failure(rule.field, message)

        return ValidationResult.ok()
