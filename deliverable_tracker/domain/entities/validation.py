"""
Validation Entities - Declarative field rules and their results.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Pattern, Union


@dataclass(frozen=True)
class ValidationRule:
    """
    Declarative constraint on a single field.

    Checks run in this order: required, pattern, max_length, min_length,
    min, max. Numeric bounds only apply when the value parses as a float.

    Attributes:
        field: Field name the rule applies to
        required: Value must be present and non-empty
        pattern: Regular expression the string value must match
        max_length: Maximum string length
        min_length: Minimum string length
        min: Minimum numeric value
        max: Maximum numeric value
        error_text: Message reported instead of the generated one
    """

    field: str
    required: bool = False
    pattern: Optional[Union[str, Pattern]] = None
    max_length: Optional[int] = None
    min_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    error_text: Optional[str] = None

    @property
    def regex(self) -> Optional[Pattern]:
        if self.pattern is None:
            return None
        if isinstance(self.pattern, str):
            return re.compile(self.pattern)
        return self.pattern


@dataclass
class ValidationResult:
    """
    Outcome of validating an entity or a change.

    Errors are keyed by field name so callers can show inline messages.
    """

    is_valid: bool = True
    errors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls) -> 'ValidationResult':
        return cls(is_valid=True)

    @classmethod
    def failure(cls, field_name: str, message: str) -> 'ValidationResult':
        return cls(is_valid=False, errors={field_name: message})

    @property
    def field(self) -> Optional[str]:
        """First failing field, if any."""
        return next(iter(self.errors), None)

    @property
    def error_text(self) -> Optional[str]:
        """Message of the first failing field, if any."""
        first = self.field
        return self.errors[first] if first is not None else None

    def to_dict(self) -> dict:
        return {
            'is_valid': self.is_valid,
            'error_text': self.error_text,
            'field': self.field,
            'errors': dict(self.errors),
        }
