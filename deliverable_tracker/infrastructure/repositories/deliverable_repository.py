"""
Deliverable Repository - Data access layer for Deliverable rows.

Acts as the authoritative source of server-calculated fields:
- Booking code: <client>-<project>-<area>-<discipline>
- Total hours: budget hours plus variation hours
- Internal document number, suggested when missing
- Project and client numbers, copied from the owning project
"""
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from deliverable_tracker.domain.entities import Deliverable, VariationStatus, normalize_guid
from deliverable_tracker.domain.exceptions import DeliverableNotFoundError
from deliverable_tracker.models import DeliverableEntity, DeliverableProgress, Project
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_SEQUENCE_SUFFIX = re.compile(r'-(\d+)$')


def build_booking_code(
    client_number: Optional[str],
    project_number: Optional[str],
    area_number: Optional[str],
    discipline: Optional[str],
) -> Optional[str]:
    """Join the booking code parts; None until every part is known."""
    parts = [client_number, project_number, area_number, discipline]
    if not all(parts):
        return None
    return "-".join(str(p) for p in parts)


class DeliverableRepository(BaseRepository[DeliverableEntity]):
    """
    Repository for Deliverable rows, Standard and variation-scoped.
    """

    def __init__(self, session: Session):
        super().__init__(session, DeliverableEntity)

    def not_found(self, guid: str) -> DeliverableNotFoundError:
        return DeliverableNotFoundError(guid)

    # =========================================================================
    # Server-Calculated Fields
    # =========================================================================

    def before_write(self, instance: DeliverableEntity) -> None:
        project = self.session.query(Project).filter(
            Project.guid == instance.project_guid
        ).first()
        if project is not None:
            instance.project_number = project.project_number
            instance.client_number = project.client_number

        instance.total_hours = (instance.budget_hours or 0.0) + (instance.variation_hours or 0.0)
        instance.booking_code = build_booking_code(
            instance.client_number,
            instance.project_number,
            instance.area_number,
            instance.discipline,
        )
        if not instance.internal_document_number:
            instance.internal_document_number = self.suggest_document_number(
                instance.project_guid,
                instance.area_number,
                instance.discipline,
                instance.document_type,
                exclude_guid=instance.guid,
            )

    def suggest_document_number(
        self,
        project_guid: str,
        area_number: Optional[str],
        discipline: Optional[str],
        document_type: Optional[str],
        exclude_guid: Optional[str] = None,
    ) -> Optional[str]:
        """
        Suggest the next internal document number for a prefix.

        Format: <client>-<project>-<area>-<discipline>-<document type>-<NNN>.
        Returns None until every prefix part is known.
        """
        project = self.session.query(Project).filter(Project.guid == normalize_guid(project_guid)).first()
        if project is None:
            return None

        parts = [project.client_number, project.project_number, area_number, discipline, document_type]
        if not all(parts):
            return None
        prefix = "-".join(str(p) for p in parts)

        query = self.session.query(DeliverableEntity.internal_document_number).filter(
            DeliverableEntity.project_guid == project.guid,
            DeliverableEntity.internal_document_number.like(f"{prefix}-%"),
        )
        if exclude_guid:
            query = query.filter(DeliverableEntity.guid != normalize_guid(exclude_guid))

        highest = 0
        for (number,) in query.all():
            match = _SEQUENCE_SUFFIX.search(number or '')
            if match:
                highest = max(highest, int(match.group(1)))

        return f"{prefix}-{highest + 1:03d}"

    # =========================================================================
    # Queries
    # =========================================================================

    def get_by_project(self, project_guid: str) -> List[Dict[str, Any]]:
        """Rows outside any unapproved variation, ordered by booking code."""
        rows = self.session.query(DeliverableEntity).filter(
            DeliverableEntity.project_guid == normalize_guid(project_guid)
        ).order_by(DeliverableEntity.booking_code, DeliverableEntity.id).all()
        return [
            self.to_dict(r) for r in rows
            if r.variation_guid is None or VariationStatus(r.variation_status).is_approved
        ]

    def get_by_variation(self, variation_guid: str) -> List[Dict[str, Any]]:
        """Rows belonging to a variation."""
        rows = self.session.query(DeliverableEntity).filter(
            DeliverableEntity.variation_guid == normalize_guid(variation_guid)
        ).order_by(DeliverableEntity.id).all()
        return [self.to_dict(r) for r in rows]

    def load(self, guid: str) -> Deliverable:
        """Load a row as a domain entity."""
        return Deliverable.from_dict(self.to_dict(self.require(guid)))

    def load_for_period(self, guid: str, period: int) -> Deliverable:
        """
        Load a deliverable with its progress as of a reporting period.

        cumulative_earnt_percentage is the value recorded for the period,
        falling back to the latest earlier period. previous_period is the
        highest cumulative recorded before the period; future_period is the
        sum of period increments recorded after it.

        Raises:
            DeliverableNotFoundError: If the deliverable does not exist
        """
        instance = self.require(guid)
        records = self.session.query(DeliverableProgress).filter(
            DeliverableProgress.deliverable_guid == instance.guid
        ).order_by(DeliverableProgress.period).all()

        previous = 0.0
        current = None
        future = 0.0
        for record in records:
            if record.period < period:
                previous = max(previous, record.cumulative_earnt_percentage or 0.0)
            elif record.period == period:
                current = record.cumulative_earnt_percentage or 0.0
            else:
                future += record.current_period_earnt_percentage or 0.0

        data = self.to_dict(instance)
        data['previous_period_earnt_percentage'] = previous
        data['future_period_earnt_percentage'] = future
        data['cumulative_earnt_percentage'] = current if current is not None else previous
        return Deliverable.from_dict(data)
