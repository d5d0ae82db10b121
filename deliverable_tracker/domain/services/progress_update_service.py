"""
Progress Update Service - Validated, ordered progress writes.

A progress mutation may change the deliverable gate, the cumulative
percentage, or both. Validation completes before anything is written.
When both change, the gate is written first and the percentage second.

The two writes are independent calls with no compensating transaction:
if the percentage write fails after the gate write succeeded, the gate
stays changed and the failure is re-raised. Both writes are idempotent
(the gate is set to a value, progress is upserted per deliverable and
period), so the caller may retry the whole mutation.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from deliverable_tracker.domain.entities import (
    Deliverable,
    ProgressUpdateRequest,
    ValidationResult,
    normalize_guid,
)
from deliverable_tracker.domain.services.progress_validation_service import (
    GATE_FIELD,
    PERCENTAGE_FIELD,
    ProgressValidationService,
)
from deliverable_tracker.infrastructure.data_service import ProgressGateway

logger = logging.getLogger(__name__)


@dataclass
class ProgressUpdateOutcome:
    """Result of processing a progress mutation."""
    validation: ValidationResult
    gate_updated: bool = False
    request: Optional[ProgressUpdateRequest] = None
    recommended_percentage: Optional[float] = None

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid

    @property
    def progress_posted(self) -> bool:
        return self.request is not None


class ProgressUpdateService:
    """
    Service applying progress mutations through the progress gateway.
    """

    def __init__(self, gateway: ProgressGateway, validator: ProgressValidationService):
        self.gateway = gateway
        self.validator = validator

    def validate(
        self,
        deliverable: Deliverable,
        new_data: Mapping[str, Any],
        period: int,
    ) -> ValidationResult:
        """Validate the period and the progress change together."""
        if period is None or int(period) < 0:
            return ValidationResult.failure('period', 'Period must be zero or greater')
        return self.validator.validate_change(deliverable, new_data)

    @staticmethod
    def gate_changed(deliverable: Deliverable, new_data: Mapping[str, Any]) -> bool:
        if GATE_FIELD not in new_data:
            return False
        return normalize_guid(new_data[GATE_FIELD]) != normalize_guid(deliverable.deliverable_gate_guid)

    def process_update(
        self,
        deliverable: Deliverable,
        new_data: Mapping[str, Any],
        period: int,
        progress_date: Optional[date] = None,
        progress_start: Optional[date] = None,
    ) -> ProgressUpdateOutcome:
        """
        Validate and apply a progress mutation.

        Args:
            deliverable: Current row with authoritative period percentages
            new_data: Changed values (deliverable_gate_guid and/or
                cumulative_earnt_percentage)
            period: Reporting period index
            progress_date: Date of the reporting period; derived from
                progress_start (weekly periods) when omitted
            progress_start: Project progress start

        Returns:
            ProgressUpdateOutcome; when invalid, nothing was written

        Raises:
            Whatever the gateway raises, unchanged
        """
        validation = self.validate(deliverable, new_data, period)
        if not validation.is_valid:
            logger.info(
                "Progress update for %s rejected: %s",
                deliverable.guid, validation.error_text
            )
            return ProgressUpdateOutcome(validation=validation)

        outcome = ProgressUpdateOutcome(validation=validation)

        if self.gate_changed(deliverable, new_data):
            new_gate = new_data[GATE_FIELD]
            self.gateway.update_gate(deliverable.guid, new_gate)
            outcome.gate_updated = True
            logger.info("Deliverable %s moved to gate %s", deliverable.guid, new_gate)

            current = new_data.get(PERCENTAGE_FIELD)
            if current is None:
                current = deliverable.cumulative_earnt_percentage
            outcome.recommended_percentage = self.validator.recommend_percentage(new_gate, current)

        percentage = new_data.get(PERCENTAGE_FIELD)
        if percentage is not None:
            request = ProgressUpdateRequest.for_deliverable(
                deliverable, float(percentage), int(period), progress_date, progress_start
            )
            try:
                self.gateway.post_progress(request)
            except Exception:
                if outcome.gate_updated:
                    logger.error(
                        "Gate for deliverable %s was updated but the progress "
                        "update for period %s failed",
                        deliverable.guid, period
                    )
                raise
            outcome.request = request
            logger.info(
                "Recorded %.2f cumulative progress for deliverable %s in period %s",
                request.cumulative_earnt_percentage, deliverable.guid, period
            )

        return outcome
