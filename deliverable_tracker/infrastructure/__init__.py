"""
Infrastructure Layer - Data service interfaces and their SQLAlchemy implementations.

Repositories are imported from deliverable_tracker.infrastructure.repositories
so the domain layer can depend on the interfaces without loading the database.
"""
from .data_service import EntityDataService, GateProvider, ProgressGateway, Sort

__all__ = [
    'EntityDataService',
    'GateProvider',
    'ProgressGateway',
    'Sort',
]
