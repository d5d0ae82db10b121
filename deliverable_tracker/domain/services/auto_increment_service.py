"""
Auto Increment Service - Next zero-padded number for a numbering scheme.

The next number is read from the highest existing value of the field,
stripped to its digits and incremented. It is advisory: two callers can
compute the same number, and uniqueness is enforced by the data service.
"""
import logging
import re
from typing import Any, Mapping, Optional

from deliverable_tracker.infrastructure.data_service import EntityDataService, Sort

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r'\D')


class AutoIncrementAllocator:
    """
    Computes the next value for an auto-numbered field.

    Args:
        data_service: Collection holding the numbered rows
        field: Field carrying the number
        pad_length: Minimum width; shorter numbers are left-padded with zeros
        start_from: Value returned when no usable number exists yet
        scope: Equality filters limiting the search (e.g. one project)
    """

    def __init__(
        self,
        data_service: EntityDataService,
        field: str,
        pad_length: int = 2,
        start_from: str = '01',
        scope: Optional[Mapping[str, Any]] = None,
    ):
        self.data_service = data_service
        self.field = field
        self.pad_length = pad_length
        self.start_from = start_from
        self.scope = dict(scope) if scope else None
        self.next_value: Optional[str] = None

    @classmethod
    def for_scheme(
        cls,
        data_service: EntityDataService,
        scheme: str,
        config,
        scope_value: Optional[str] = None,
    ) -> 'AutoIncrementAllocator':
        """
        Build an allocator from a configured numbering scheme.

        Raises:
            ConfigurationError: If the scheme is not configured
        """
        definition = config.get_numbering_scheme(scheme)
        scope = None
        if definition['scope_field'] and scope_value is not None:
            scope = {definition['scope_field']: scope_value}
        return cls(
            data_service,
            definition['field'],
            pad_length=definition['pad_length'],
            start_from=definition['start_from'],
            scope=scope,
        )

    def next_number(self) -> str:
        """
        Compute the next number from the current maximum.

        Data service errors propagate to the caller.
        """
        rows = self.data_service.query(
            filters=self.scope,
            sort=Sort(self.field, descending=True),
            limit=1,
        )
        if not rows:
            return self.start_from

        current = rows[0].get(self.field)
        digits = _NON_DIGITS.sub('', str(current if current is not None else ''))
        if not digits:
            logger.debug("No digits in %s value %r; using %s", self.field, current, self.start_from)
            return self.start_from

        return str(int(digits) + 1).zfill(self.pad_length)

    def refresh(self) -> str:
        """Recompute and cache the next number."""
        self.next_value = self.next_number()
        return self.next_value
