"""SQLAlchemy adapter package for cleanse."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAnalysisRunRepository,
    SqlAlchemyIssueHistoryRepository,
    SqlAlchemyIssueRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyAnalysisRunRepository",
    "SqlAlchemyIssueHistoryRepository",
    "SqlAlchemyIssueRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
