"""Domain port definitions for adapters."""

from __future__ import annotations

from .locking import RunLock, RunLockHandle
from .persistence import AnalysisRunRepository, IssueHistoryRepository, IssueRepository
from .unit_of_work import (
    CleanseRepositories,
    CleanseUnitOfWork,
    CleanseUnitOfWorkFactory,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AnalysisRunRepository",
    "CleanseRepositories",
    "CleanseUnitOfWork",
    "CleanseUnitOfWorkFactory",
    "IssueHistoryRepository",
    "IssueRepository",
    "RepositoryCollection",
    "RunLock",
    "RunLockHandle",
    "UnitOfWork",
]
