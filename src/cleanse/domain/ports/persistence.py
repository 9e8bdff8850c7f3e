"""Ports for persisting issues, their history and analysis runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cleanse.domain.model import (
        AnalysisRun,
        Issue,
        IssueCodeSummary,
        IssueFilter,
        IssueHistoryEntry,
    )


@runtime_checkable
class IssueRepository(Protocol):
    """Persistence contract for issue aggregates."""

    def get(self, issue_id: str) -> Issue | None: ...

    def upsert(self, issue: Issue) -> None: ...

    def deactivate_stale(self, operation_id: str) -> Sequence[str]:
        """Deactivate every active issue not stamped with ``operation_id``.

        Returns the ids of the issues that were closed, so that callers can
        record one history entry per issue in the same transaction.
        """
        ...

    def list_issues(self, issue_filter: IssueFilter) -> list[Issue]:
        """Matching issues ordered by CPH, then issue code."""
        ...

    def count(self, issue_filter: IssueFilter) -> int: ...

    def summary_by_code(self, issue_filter: IssueFilter) -> list[IssueCodeSummary]: ...

    def delete_all(self) -> int: ...


@runtime_checkable
class IssueHistoryRepository(Protocol):
    """Append-only store of issue history entries."""

    def append(self, entry: IssueHistoryEntry) -> None: ...

    def append_batch(self, entries: Sequence[IssueHistoryEntry]) -> None: ...

    def list_for_issue(self, issue_id: str) -> list[IssueHistoryEntry]: ...

    def delete_all(self) -> int: ...


@runtime_checkable
class AnalysisRunRepository(Protocol):
    """Persistence contract for analysis runs."""

    def create(self, run: AnalysisRun) -> None: ...

    def get(self, run_id: str) -> AnalysisRun | None: ...

    def update(self, run: AnalysisRun) -> None: ...

    def latest(self) -> AnalysisRun | None: ...

    def delete_all(self) -> int: ...
