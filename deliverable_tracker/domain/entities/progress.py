"""
Progress Entities - Period-by-period progress reporting.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

from .deliverable import Deliverable

PERIOD_LENGTH = timedelta(weeks=1)


def progress_date_for_period(progress_start: Optional[date], period: int) -> Optional[date]:
    """
    Reporting date of a weekly period.

    Period 0 falls on the project's progress start; negative periods are
    clamped to 0. Returns None when the project has no progress start.
    """
    if progress_start is None:
        return None
    return progress_start + PERIOD_LENGTH * max(int(period), 0)


@dataclass(frozen=True)
class ProgressUpdateRequest:
    """
    Command to record cumulative progress for a deliverable in a period.

    Not persisted directly; handed to the progress gateway, which upserts
    the progress row for (deliverable_guid, period).

    Attributes:
        deliverable_guid: Deliverable being reported
        project_guid: Owning project
        cumulative_earnt_percentage: Progress up to and including the period
        period: Reporting period index (>= 0)
        progress_date: Date the period is reported for
        current_period_earnt_percentage: Progress earned within the period
        units: Hours earned within the period
    """

    deliverable_guid: str
    project_guid: Optional[str]
    cumulative_earnt_percentage: float
    period: int
    progress_date: Optional[date] = None
    current_period_earnt_percentage: float = 0.0
    units: float = 0.0
    guid: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def for_deliverable(
        cls,
        deliverable: Deliverable,
        cumulative_earnt_percentage: float,
        period: int,
        progress_date: Optional[date] = None,
        progress_start: Optional[date] = None,
    ) -> 'ProgressUpdateRequest':
        """
        Build a request from a deliverable's authoritative period values.

        The period share is the increase over what earlier periods already
        reported, never negative. Units are that share of total hours.
        Without an explicit progress_date the date is derived from the
        project's progress start.
        """
        if progress_date is None:
            progress_date = progress_date_for_period(progress_start, period)
        previous = deliverable.previous_period_earnt_percentage or 0.0
        current = max(0.0, cumulative_earnt_percentage - previous)
        total_hours = deliverable.total_hours or 0.0

        return cls(
            deliverable_guid=deliverable.guid,
            project_guid=deliverable.project_guid,
            cumulative_earnt_percentage=cumulative_earnt_percentage,
            period=period,
            progress_date=progress_date,
            current_period_earnt_percentage=current,
            units=current * total_hours,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'guid': self.guid,
            'deliverable_guid': self.deliverable_guid,
            'project_guid': self.project_guid,
            'cumulative_earnt_percentage': self.cumulative_earnt_percentage,
            'current_period_earnt_percentage': self.current_period_earnt_percentage,
            'units': self.units,
            'period': self.period,
            'progress_date': self.progress_date.isoformat() if self.progress_date else None,
        }
