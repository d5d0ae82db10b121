"""
Progress Repository - Gate changes and per-period progress records.

Implements the progress gateway. Both writes are idempotent: the gate is
set to a value and progress is upserted on (deliverable_guid, period).
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from deliverable_tracker.domain.entities import ProgressUpdateRequest, normalize_guid
from deliverable_tracker.domain.exceptions import DeliverableNotFoundError, GateNotFoundError
from deliverable_tracker.infrastructure.data_service import ProgressGateway
from deliverable_tracker.models import DeliverableEntity, DeliverableGateEntity, DeliverableProgress
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProgressRepository(BaseRepository[DeliverableProgress], ProgressGateway):
    """Repository for deliverable progress records."""

    def __init__(self, session: Session):
        super().__init__(session, DeliverableProgress)

    def _deliverable(self, deliverable_guid: str) -> DeliverableEntity:
        deliverable = self.session.query(DeliverableEntity).filter(
            DeliverableEntity.guid == normalize_guid(deliverable_guid)
        ).first()
        if deliverable is None:
            raise DeliverableNotFoundError(deliverable_guid)
        return deliverable

    def update_gate(self, deliverable_guid: str, gate_guid: Optional[str]) -> None:
        """
        Raises:
            DeliverableNotFoundError: If the deliverable does not exist
            GateNotFoundError: If the gate does not exist
        """
        deliverable = self._deliverable(deliverable_guid)
        if gate_guid is not None:
            gate = self.session.query(DeliverableGateEntity).filter(
                DeliverableGateEntity.guid == normalize_guid(gate_guid)
            ).first()
            if gate is None:
                raise GateNotFoundError(gate_guid)
        deliverable.deliverable_gate_guid = normalize_guid(gate_guid)
        self.session.flush()

    def post_progress(self, request: ProgressUpdateRequest) -> Dict[str, Any]:
        """
        Raises:
            DeliverableNotFoundError: If the deliverable does not exist
        """
        deliverable = self._deliverable(request.deliverable_guid)
        record = self.session.query(DeliverableProgress).filter(
            DeliverableProgress.deliverable_guid == deliverable.guid,
            DeliverableProgress.period == request.period,
        ).first()

        if record is None:
            record = DeliverableProgress(
                guid=normalize_guid(request.guid),
                deliverable_guid=deliverable.guid,
                period=request.period,
            )
            self.session.add(record)

        record.project_guid = normalize_guid(request.project_guid)
        record.progress_date = request.progress_date
        record.cumulative_earnt_percentage = request.cumulative_earnt_percentage
        record.current_period_earnt_percentage = request.current_period_earnt_percentage
        record.units = request.units

        later = self.session.query(DeliverableProgress.period).filter(
            DeliverableProgress.deliverable_guid == deliverable.guid,
            DeliverableProgress.period > request.period,
        ).first()
        if later is None:
            deliverable.cumulative_earnt_percentage = request.cumulative_earnt_percentage

        self.session.flush()
        return self.to_dict(record)

    def get_by_deliverable(self, deliverable_guid: str) -> List[Dict[str, Any]]:
        rows = self.session.query(DeliverableProgress).filter(
            DeliverableProgress.deliverable_guid == normalize_guid(deliverable_guid)
        ).order_by(DeliverableProgress.period).all()
        return [self.to_dict(r) for r in rows]
