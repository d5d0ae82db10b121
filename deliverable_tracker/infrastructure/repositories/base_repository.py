"""
Base Repository - SQLAlchemy implementation of the entity data service.

Provides common CRUD operations and query helpers for all entities. Rows
leave the repository as plain dicts; the caller owns the transaction and
commits after the repository has flushed.
"""
from enum import Enum
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar
from uuid import uuid4

from sqlalchemy.orm import Session

from deliverable_tracker.domain.entities import normalize_guid
from deliverable_tracker.domain.exceptions import DomainError
from deliverable_tracker.infrastructure.data_service import EntityDataService, Sort
from deliverable_tracker.models import Base

T = TypeVar('T', bound=Base)

# Bookkeeping columns never exposed to the domain
_INTERNAL_COLUMNS = frozenset({'id', 'created_at', 'updated_at'})


class BaseRepository(EntityDataService, Generic[T]):
    """
    Base repository providing common data access operations.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_by_id(self, entity_id: int) -> Optional[T]:
        return self.session.query(self.model_class).filter(
            self.model_class.id == entity_id
        ).first()

    def get_by_guid(self, guid: str) -> Optional[T]:
        """
        Retrieve an entity by its GUID.

        Args:
            guid: GUID string, any case, with or without braces

        Returns:
            The entity if found, None otherwise
        """
        return self.session.query(self.model_class).filter(
            self.model_class.guid == normalize_guid(guid)
        ).first()

    def require(self, guid: str) -> T:
        """Retrieve an entity by GUID or raise the repository's not-found error."""
        entity = self.get_by_guid(guid)
        if entity is None:
            raise self.not_found(guid)
        return entity

    def not_found(self, guid: str) -> DomainError:
        return DomainError(f"{self.model_class.__name__} with guid '{guid}' not found", code="NOT_FOUND")

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        query = self.session.query(self.model_class).offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def count(self) -> int:
        return self.session.query(self.model_class).count()

    def exists(self, **criteria) -> bool:
        """Check if an entity matching the criteria exists."""
        query = self.session.query(self.model_class)
        for field, value in criteria.items():
            query = query.filter(getattr(self.model_class, field) == value)
        return query.first() is not None

    # =========================================================================
    # Conversion
    # =========================================================================

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.model_class.__table__.columns]

    def to_dict(self, entity: T) -> Dict[str, Any]:
        """Convert a model instance to a plain dict of its domain columns."""
        return {
            name: getattr(entity, name)
            for name in self.column_names
            if name not in _INTERNAL_COLUMNS
        }

    def _writable(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep known columns, flatten enums and normalize GUID columns."""
        columns = set(self.column_names) - _INTERNAL_COLUMNS
        values = {}
        for key, value in data.items():
            if key not in columns:
                continue
            if isinstance(value, Enum):
                value = value.value
            if value is not None and (key == 'guid' or key.endswith('_guid')):
                value = normalize_guid(value)
            values[key] = value
        return values

    # =========================================================================
    # EntityDataService
    # =========================================================================

    def create(self, entity: Mapping[str, Any]) -> Dict[str, Any]:
        values = self._writable(entity)
        if not values.get('guid'):
            values['guid'] = str(uuid4())

        instance = self.model_class(**values)
        self.before_write(instance)
        self.session.add(instance)
        self.session.flush()
        return self.to_dict(instance)

    def update(self, guid: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        instance = self.require(guid)
        for key, value in self._writable(fields).items():
            if key == 'guid':
                continue
            setattr(instance, key, value)

        self.before_write(instance)
        self.session.flush()
        return self.to_dict(instance)

    def delete(self, guid: str) -> None:
        instance = self.require(guid)
        self.session.delete(instance)
        self.session.flush()

    def query(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        sort: Optional[Sort] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = self.session.query(self.model_class)

        for field, value in (filters or {}).items():
            column = self._column(field)
            if value is None:
                query = query.filter(column.is_(None))
            else:
                if field == 'guid' or field.endswith('_guid'):
                    value = normalize_guid(value)
                query = query.filter(column == value)

        if sort is not None:
            column = self._column(sort.field)
            query = query.order_by(column.desc() if sort.descending else column.asc())

        if limit:
            query = query.limit(limit)

        return [self.to_dict(row) for row in query.all()]

    def _column(self, field: str):
        if field not in self.column_names:
            raise ValueError(f"{self.model_class.__name__} has no field '{field}'")
        return getattr(self.model_class, field)

    def before_write(self, instance: T) -> None:
        """Hook for server-calculated fields; called before every flush."""
        pass

    # =========================================================================
    # Transaction
    # =========================================================================

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def flush(self) -> None:
        self.session.flush()
