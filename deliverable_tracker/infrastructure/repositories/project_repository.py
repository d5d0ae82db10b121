"""
Project and Area Repositories - Data access for numbered reference entities.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from deliverable_tracker.domain.entities import normalize_guid
from deliverable_tracker.domain.exceptions import DomainError, ProjectNotFoundError
from deliverable_tracker.models import Area, Project
from .base_repository import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for projects; project numbers are zero-padded and sequential."""

    def __init__(self, session: Session):
        super().__init__(session, Project)

    def not_found(self, guid: str) -> ProjectNotFoundError:
        return ProjectNotFoundError(guid)

    def get_by_number(self, project_number: str):
        return self.session.query(Project).filter(
            Project.project_number == project_number
        ).first()

    def progress_start(self, guid: Optional[str]) -> Optional[date]:
        """Progress start of a project, or None when unknown or unset."""
        if guid is None:
            return None
        project = self.get_by_guid(guid)
        return project.progress_start if project else None


class AreaRepository(BaseRepository[Area]):
    """Repository for areas, numbered 00-99 within a project."""

    def __init__(self, session: Session):
        super().__init__(session, Area)

    def not_found(self, guid: str) -> DomainError:
        return DomainError(f"Area with guid '{guid}' not found", code="AREA_NOT_FOUND")

    def get_by_project(self, project_guid: str) -> List[Dict[str, Any]]:
        rows = self.session.query(Area).filter(
            Area.project_guid == normalize_guid(project_guid)
        ).order_by(Area.number).all()
        return [self.to_dict(r) for r in rows]
