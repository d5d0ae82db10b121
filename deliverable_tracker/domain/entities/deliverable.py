"""
Deliverable Entity - A unit of engineering work product.

A deliverable is created under a project with Standard variation status.
It may be copied into a variation, where the copy is edited or cancelled
independently of the original. The original is never touched by variation
activity until the variation is approved.
"""
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar
from uuid import uuid4

E = TypeVar('E', bound=Enum)


class DeliverableType(Enum):
    """Kind of work product."""
    TASK = "Task"
    NON_DELIVERABLE = "NonDeliverable"
    DELIVERABLE_ICR = "DeliverableICR"
    DELIVERABLE = "Deliverable"


class Department(Enum):
    """Department that owns the deliverable."""
    ADMINISTRATION = "Administration"
    DESIGN = "Design"
    ENGINEERING = "Engineering"
    MANAGEMENT = "Management"


class VariationStatus(Enum):
    """Persisted variation status of a deliverable row."""
    STANDARD = "Standard"
    UNAPPROVED_VARIATION = "UnapprovedVariation"
    APPROVED_VARIATION = "ApprovedVariation"
    UNAPPROVED_CANCELLATION = "UnapprovedCancellation"
    APPROVED_CANCELLATION = "ApprovedCancellation"

    @property
    def is_cancellation(self) -> bool:
        return self in (
            VariationStatus.UNAPPROVED_CANCELLATION,
            VariationStatus.APPROVED_CANCELLATION,
        )

    @property
    def is_approved(self) -> bool:
        return self in (
            VariationStatus.APPROVED_VARIATION,
            VariationStatus.APPROVED_CANCELLATION,
        )


class UiStatus(Enum):
    """Lifecycle tag of a row as seen inside a variation."""
    ORIGINAL = "Original"
    ADD = "Add"
    EDIT = "Edit"
    CANCELLED = "Cancelled"


# Calculated by the data service on create/update; never editable.
SERVER_CALCULATED_FIELDS = frozenset({
    'booking_code',
    'internal_document_number',
    'client_number',
    'project_number',
    'total_hours',
})


def coerce_enum(enum_class: Type[E], value: Any) -> Optional[E]:
    """Accept an enum member, its value or its name."""
    if value is None or isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except ValueError:
        return enum_class[str(value).upper()]


@dataclass(frozen=True)
class Deliverable:
    """
    Deliverable row, either Standard or scoped to a variation.

    Attributes:
        guid: Identity of the row
        project_guid: Owning project
        budget_hours: Hours budgeted on the original scope
        variation_hours: Hours added or removed by a variation
        deliverable_gate_guid: Current milestone gate
        cumulative_earnt_percentage: Progress up to the selected period (0..1)
        previous_period_earnt_percentage: Progress reported before the period
        future_period_earnt_percentage: Progress reported after the period
        variation_guid: Variation the row belongs to, if any
        original_deliverable_guid: Standard deliverable this row derives from
        variation_status: Persisted variation status
        ui_status: Client-side lifecycle tag inside a variation
    """

    guid: str = field(default_factory=lambda: str(uuid4()))
    project_guid: Optional[str] = None

    # Identification
    area_number: Optional[str] = None
    discipline: Optional[str] = None
    document_type: Optional[str] = None
    deliverable_type_id: DeliverableType = DeliverableType.TASK
    department_id: Department = Department.ADMINISTRATION
    document_title: Optional[str] = None
    client_document_number: Optional[str] = None

    # Server-calculated
    internal_document_number: Optional[str] = None
    booking_code: Optional[str] = None
    project_number: Optional[str] = None
    client_number: Optional[str] = None
    total_hours: float = 0.0

    # Hours
    budget_hours: float = 0.0
    variation_hours: float = 0.0

    # Progress
    deliverable_gate_guid: Optional[str] = None
    cumulative_earnt_percentage: float = 0.0
    previous_period_earnt_percentage: float = 0.0
    future_period_earnt_percentage: float = 0.0

    # Variation linkage
    variation_guid: Optional[str] = None
    original_deliverable_guid: Optional[str] = None
    variation_status: VariationStatus = VariationStatus.STANDARD
    ui_status: Optional[UiStatus] = None

    @property
    def is_variation_row(self) -> bool:
        return self.variation_guid is not None

    @property
    def is_cancelled(self) -> bool:
        return self.variation_status.is_cancellation

    def copy_with(self, **changes) -> 'Deliverable':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain mapping with enum values flattened."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.value if isinstance(value, Enum) else value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Deliverable':
        """Build a deliverable from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}

        for name, enum_class in (
            ('deliverable_type_id', DeliverableType),
            ('department_id', Department),
            ('variation_status', VariationStatus),
            ('ui_status', UiStatus),
        ):
            if name in values:
                values[name] = coerce_enum(enum_class, values[name])

        # None means "not reported" for numeric columns
        for name in (
            'budget_hours', 'variation_hours', 'total_hours',
            'cumulative_earnt_percentage', 'previous_period_earnt_percentage',
            'future_period_earnt_percentage',
        ):
            if name in values and values[name] is None:
                values[name] = 0.0

        if values.get('variation_status') is None:
            values.pop('variation_status', None)
        if values.get('guid') is None:
            values.pop('guid', None)

        return cls(**values)
