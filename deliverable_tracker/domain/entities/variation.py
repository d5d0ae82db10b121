"""
Variation Entity - A named change order scoped to one project.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional
from uuid import uuid4


@dataclass(frozen=True)
class Variation:
    """
    Change order carrying deliverable additions, edits and cancellations.

    Lifecycle: created -> deliverables attached/edited/cancelled ->
    submitted -> approved or rejected. Once submitted, its deliverables
    are read-only.
    """

    guid: str = field(default_factory=lambda: str(uuid4()))
    project_guid: Optional[str] = None
    name: str = ""
    comments: Optional[str] = None
    submitted: Optional[date] = None
    client_approved: Optional[date] = None

    @property
    def is_submitted(self) -> bool:
        return self.submitted is not None

    @property
    def is_approved(self) -> bool:
        return self.client_approved is not None

    @property
    def is_read_only(self) -> bool:
        return self.is_submitted or self.is_approved

    @property
    def lock_state(self) -> Optional[str]:
        """'approved', 'submitted' or None when still editable."""
        if self.is_approved:
            return 'approved'
        if self.is_submitted:
            return 'submitted'
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'guid': self.guid,
            'project_guid': self.project_guid,
            'name': self.name,
            'comments': self.comments,
            'submitted': self.submitted.isoformat() if self.submitted else None,
            'client_approved': self.client_approved.isoformat() if self.client_approved else None,
        }
