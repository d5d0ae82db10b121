"""
Deliverable Gate Repository - Reference data for progress ceilings.
"""
import logging
from typing import Any, Iterable, List, Mapping

from sqlalchemy.orm import Session

from deliverable_tracker.domain.entities import DeliverableGate
from deliverable_tracker.domain.exceptions import GateNotFoundError
from deliverable_tracker.infrastructure.data_service import GateProvider
from deliverable_tracker.models import DeliverableGateEntity
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class DeliverableGateRepository(BaseRepository[DeliverableGateEntity], GateProvider):
    """Gates ordered by their ceiling."""

    def __init__(self, session: Session):
        super().__init__(session, DeliverableGateEntity)

    def not_found(self, guid: str) -> GateNotFoundError:
        return GateNotFoundError(guid)

    def list_gates(self) -> List[DeliverableGate]:
        rows = self.session.query(DeliverableGateEntity).order_by(
            DeliverableGateEntity.max_percentage
        ).all()
        return [
            DeliverableGate(
                guid=r.guid,
                name=r.name,
                max_percentage=r.max_percentage,
                auto_percentage=r.auto_percentage,
            )
            for r in rows
        ]

    def seed(self, gates: Iterable[Mapping[str, Any]]) -> int:
        """
        Insert or update gates by guid.

        Returns:
            Number of gates written
        """
        written = 0
        for gate in gates:
            if self.get_by_guid(gate['guid']) is None:
                self.create(gate)
            else:
                self.update(gate['guid'], gate)
            written += 1
        logger.info("Seeded %d deliverable gates", written)
        return written
