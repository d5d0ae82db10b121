"""
Progress Validation Service - Gate ceilings and period monotonicity.

Implements validation rules for cumulative progress changes, in order:
- Percentage within 0..1
- Percentage not above the gate ceiling
- Percentage not below what earlier periods already reported
- Percentage plus what later periods reported not above 100%

Previous and future period percentages are authoritative values from the
data service; they are never recomputed here.
"""
import logging
import math
from typing import Any, Mapping, Optional, Sequence

from deliverable_tracker.domain.entities import (
    DeliverableGate,
    ValidationResult,
    same_guid,
)
from deliverable_tracker.domain.services.entity_validation_service import as_mapping

logger = logging.getLogger(__name__)

PERCENTAGE_FIELD = 'cumulative_earnt_percentage'
GATE_FIELD = 'deliverable_gate_guid'
RANGE_ERROR = 'Percentage must be between 0% and 100%'


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


def parse_percentage(value: Any) -> Optional[float]:
    """Parse a percentage; None when it is not a finite number."""
    try:
        percentage = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(percentage) or math.isinf(percentage):
        return None
    return percentage


class ProgressValidationService:
    """
    Service for validating progress percentage changes.

    The gate list is passed in explicitly; refreshing it is the job of the
    gate provider, not of this service.
    """

    def __init__(self, gates: Sequence[DeliverableGate]):
        self.gates = list(gates)

    # =========================================================================
    # Gate Resolution
    # =========================================================================

    def resolve_gate(self, gate_guid: Optional[str]) -> Optional[DeliverableGate]:
        """Find a gate by GUID, ignoring case and brace formatting."""
        if gate_guid is None:
            return None
        return next((g for g in self.gates if same_guid(g.guid, gate_guid)), None)

    @staticmethod
    def effective_gate_guid(old_data: Mapping[str, Any], new_data: Mapping[str, Any]) -> Optional[str]:
        """A gate changed in the same mutation wins over the current gate."""
        if GATE_FIELD in new_data:
            return new_data[GATE_FIELD]
        return old_data.get(GATE_FIELD)

    # =========================================================================
    # Core Rules
    # =========================================================================

    def check_percentage(
        self,
        percentage: float,
        gate: Optional[DeliverableGate],
        previous_period_percentage: float = 0.0,
        future_period_percentage: float = 0.0,
    ) -> ValidationResult:
        """
        Apply the four progress rules in order; the first failure wins.

        Args:
            percentage: Proposed cumulative percentage (0..1)
            gate: Resolved gate, or None to skip the ceiling check
            previous_period_percentage: Reported before the selected period
            future_period_percentage: Reported after the selected period

        Returns:
            ValidationResult keyed on cumulative_earnt_percentage
        """
        if not (0 <= percentage <= 1):
            return ValidationResult.failure(PERCENTAGE_FIELD, RANGE_ERROR)

        if gate is not None and percentage > gate.max_percentage:
            return ValidationResult.failure(
                PERCENTAGE_FIELD,
                f"Percentage cannot exceed the {gate.name} gate maximum of "
                f"{_pct(gate.max_percentage)}",
            )

        if percentage < previous_period_percentage:
            return ValidationResult.failure(
                PERCENTAGE_FIELD,
                f"Percentage cannot be less than what's already reported in "
                f"previous periods ({_pct(previous_period_percentage)})",
            )

        if percentage + future_period_percentage > 1.0:
            return ValidationResult.failure(
                PERCENTAGE_FIELD,
                f"Combined percentage with future periods cannot exceed 100% "
                f"(current: {_pct(percentage)}, future: {_pct(future_period_percentage)})",
            )

        return ValidationResult.ok()

    # =========================================================================
    # Change Validation
    # =========================================================================

    def validate_change(self, old_data: Any, new_data: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a row mutation that may touch progress and gate together.

        A mutation that does not set cumulative_earnt_percentage is valid.
        The ceiling is checked against the destination gate when the gate
        changes in the same mutation.

        Args:
            old_data: Current row (mapping or Deliverable)
            new_data: Changed values

        Returns:
            ValidationResult
        """
        baseline = as_mapping(old_data)
        delta = as_mapping(new_data)

        if delta.get(PERCENTAGE_FIELD) is None:
            return ValidationResult.ok()

        gate_guid = self.effective_gate_guid(baseline, delta)
        gate = self.resolve_gate(gate_guid)
        if gate_guid is not None and gate is None:
            logger.warning("Gate %s not found; skipping ceiling check", gate_guid)

        percentage = parse_percentage(delta[PERCENTAGE_FIELD])
        if percentage is None:
            return ValidationResult.failure(PERCENTAGE_FIELD, RANGE_ERROR)

        return self.check_percentage(
            percentage,
            gate,
            float(baseline.get('previous_period_earnt_percentage') or 0.0),
            float(baseline.get('future_period_earnt_percentage') or 0.0),
        )

    def validate_progress(self, progress: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a flat progress record.

        The record carries its own gate and period percentages; missing
        period percentages are treated as zero.
        """
        data = as_mapping(progress)
        if data.get(PERCENTAGE_FIELD) is None:
            return ValidationResult.ok()

        percentage = parse_percentage(data[PERCENTAGE_FIELD])
        if percentage is None:
            return ValidationResult.failure(PERCENTAGE_FIELD, RANGE_ERROR)

        return self.check_percentage(
            percentage,
            self.resolve_gate(data.get(GATE_FIELD)),
            float(data.get('previous_period_earnt_percentage') or 0.0),
            float(data.get('future_period_earnt_percentage') or 0.0),
        )

    # =========================================================================
    # Auto Percentage
    # =========================================================================

    def recommend_percentage(
        self,
        gate_guid: Optional[str],
        current_percentage: Optional[float],
    ) -> Optional[float]:
        """
        Suggest jumping to the gate's auto percentage.

        Advisory only. Returns None when the gate has no auto percentage or
        when the current percentage is already at or above it, so applying
        the suggestion can never lower progress.
        """
        gate = self.resolve_gate(gate_guid)
        if gate is None or gate.auto_percentage is None:
            return None

        current = current_percentage or 0.0
        if gate.auto_percentage > current:
            return gate.auto_percentage
        return None
