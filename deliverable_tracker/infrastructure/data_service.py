"""
External collaborator interfaces.

The engine talks to persistence only through these abstractions. Rows are
exchanged as plain dicts; server-calculated fields (booking code, totals,
document numbers) are only trusted from the values create/update return.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

from deliverable_tracker.domain.entities import DeliverableGate, ProgressUpdateRequest


class Sort(NamedTuple):
    """Ordering for a query."""
    field: str
    descending: bool = False


class EntityDataService(ABC):
    """Persistence for one entity collection."""

    @abstractmethod
    def create(self, entity: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Insert a row.

        Returns:
            The stored row including server-calculated fields
        """
        pass

    @abstractmethod
    def update(self, guid: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update.

        Returns:
            The stored row including server-calculated fields
        """
        pass

    @abstractmethod
    def delete(self, guid: str) -> None:
        """Remove a row."""
        pass

    @abstractmethod
    def query(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        sort: Optional[Sort] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch rows matching equality filters.

        Args:
            filters: Field-value pairs that must all match
            sort: Optional ordering
            limit: Maximum number of rows

        Returns:
            List of rows
        """
        pass


class GateProvider(ABC):
    """Read-only source of deliverable gates."""

    @abstractmethod
    def list_gates(self) -> List[DeliverableGate]:
        pass


class ProgressGateway(ABC):
    """The two progress-related write operations."""

    @abstractmethod
    def update_gate(self, deliverable_guid: str, gate_guid: Optional[str]) -> None:
        """Set the deliverable's current gate."""
        pass

    @abstractmethod
    def post_progress(self, request: ProgressUpdateRequest) -> Dict[str, Any]:
        """
        Record cumulative progress for a deliverable and period.

        Implementations upsert on (deliverable_guid, period).
        """
        pass
