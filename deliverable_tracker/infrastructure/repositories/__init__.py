"""
Repository implementations for data access layer.
"""
from .base_repository import BaseRepository
from .deliverable_repository import DeliverableRepository, build_booking_code
from .variation_repository import VariationRepository
from .project_repository import ProjectRepository, AreaRepository
from .gate_repository import DeliverableGateRepository
from .progress_repository import ProgressRepository

__all__ = [
    'BaseRepository',
    'DeliverableRepository',
    'build_booking_code',
    'VariationRepository',
    'ProjectRepository',
    'AreaRepository',
    'DeliverableGateRepository',
    'ProgressRepository',
]
