"""
Variation Repository - Data access layer for Variation entities.
"""
from datetime import date
from typing import Any, Dict, List, Mapping

from sqlalchemy.orm import Session

from deliverable_tracker.domain.entities import Variation, normalize_guid
from deliverable_tracker.domain.exceptions import VariationNotFoundError
from deliverable_tracker.models import VariationEntity
from .base_repository import BaseRepository


def _as_date(value: Any):
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


class VariationRepository(BaseRepository[VariationEntity]):
    """
    Repository for Variation entities.

    Variation names are sequential per project; use AutoIncrementAllocator
    with the 'variation' numbering scheme to suggest the next one.
    """

    def __init__(self, session: Session):
        super().__init__(session, VariationEntity)

    def not_found(self, guid: str) -> VariationNotFoundError:
        return VariationNotFoundError(guid)

    def _writable(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        values = super()._writable(data)
        for key in ('submitted', 'client_approved'):
            if key in values:
                values[key] = _as_date(values[key])
        return values

    def get_by_project(self, project_guid: str) -> List[Dict[str, Any]]:
        rows = self.session.query(VariationEntity).filter(
            VariationEntity.project_guid == normalize_guid(project_guid)
        ).order_by(VariationEntity.name).all()
        return [self.to_dict(r) for r in rows]

    def load(self, guid: str) -> Variation:
        """
        Load a variation as a domain entity.

        Raises:
            VariationNotFoundError: If the variation does not exist
        """
        instance = self.require(guid)
        return Variation(
            guid=instance.guid,
            project_guid=instance.project_guid,
            name=instance.name,
            comments=instance.comments,
            submitted=instance.submitted,
            client_approved=instance.client_approved,
        )
