"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, func, select, update

from cleanse.adapters.sqlalchemy.mappings import (
    analysis_run_table,
    issue_history_table,
    issue_table,
)
from cleanse.domain.model import (
    AnalysisRun,
    Issue,
    IssueCodeSummary,
    IssueHistoryEntry,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import ColumnElement, CursorResult

    from cleanse.domain.model import IssueFilter
    from sqlalchemy.orm import Session


def _rowcount(result: object) -> int:
    return max(0, cast("CursorResult[object]", result).rowcount)


def _issue_criteria(issue_filter: IssueFilter) -> list[ColumnElement[bool]]:
    columns = issue_table.c
    criteria: list[ColumnElement[bool]] = []
    if issue_filter.is_active is not None:
        criteria.append(columns.is_active.is_(issue_filter.is_active))
    if issue_filter.issue_code is not None:
        criteria.append(columns.issue_code == issue_filter.issue_code)
    if issue_filter.rule_code is not None:
        criteria.append(columns.rule_code == issue_filter.rule_code)
    if issue_filter.is_ignored is not None:
        criteria.append(columns.is_ignored.is_(issue_filter.is_ignored))
    if issue_filter.resolution_status is not None:
        criteria.append(columns.resolution_status == issue_filter.resolution_status)
    if issue_filter.assigned_to is not None:
        criteria.append(columns.assigned_to == issue_filter.assigned_to)
    if issue_filter.unassigned:
        criteria.append(columns.assigned_to.is_(None))
    return criteria


class SqlAlchemyIssueRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, issue_id: str) -> Issue | None:
        return self.session.get(Issue, issue_id)

    def upsert(self, issue: Issue) -> None:
        # objects loaded by this session are already tracked; merge covers detached copies
        self.session.merge(issue)
        self.session.flush()

    def deactivate_stale(self, operation_id: str) -> Sequence[str]:
        stmt = (
            update(issue_table)
            .where(issue_table.c.is_active.is_(True))
            .where(issue_table.c.operation_id != operation_id)
            .values(is_active=False, last_updated_at=utcnow())
            .returning(issue_table.c.id)
        )
        closed = list(self.session.execute(stmt).scalars())
        # rows changed behind the identity map
        self.session.expire_all()
        return closed

    def list_issues(self, issue_filter: IssueFilter) -> list[Issue]:
        stmt = (
            select(Issue)
            .where(*_issue_criteria(issue_filter))
            .order_by(issue_table.c.cph, issue_table.c.issue_code, issue_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def count(self, issue_filter: IssueFilter) -> int:
        stmt = (
            select(func.count())
            .select_from(issue_table)
            .where(*_issue_criteria(issue_filter))
        )
        return self.session.execute(stmt).scalar_one()

    def summary_by_code(self, issue_filter: IssueFilter) -> list[IssueCodeSummary]:
        code = issue_table.c.issue_code
        stmt = (
            select(code, func.count())
            .where(*_issue_criteria(issue_filter))
            .group_by(code)
            .order_by(code)
        )
        return [
            IssueCodeSummary(issue_code=issue_code, count=count)
            for issue_code, count in self.session.execute(stmt)
        ]

    def delete_all(self) -> int:
        result = self.session.execute(delete(issue_table))
        self.session.expire_all()
        return _rowcount(result)


class SqlAlchemyIssueHistoryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, entry: IssueHistoryEntry) -> None:
        self.session.add(entry)
        self.session.flush()

    def append_batch(self, entries: Sequence[IssueHistoryEntry]) -> None:
        self.session.add_all(entries)
        self.session.flush()

    def list_for_issue(self, issue_id: str) -> list[IssueHistoryEntry]:
        stmt = (
            select(IssueHistoryEntry)
            .where(issue_history_table.c.issue_id == issue_id)
            .order_by(issue_history_table.c.occurred_at, issue_history_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def delete_all(self) -> int:
        result = self.session.execute(delete(issue_history_table))
        self.session.expire_all()
        return _rowcount(result)


class SqlAlchemyAnalysisRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, run: AnalysisRun) -> None:
        self.session.add(run)
        self.session.flush()

    def get(self, run_id: str) -> AnalysisRun | None:
        return self.session.get(AnalysisRun, run_id)

    def update(self, run: AnalysisRun) -> None:
        self.session.merge(run)
        self.session.flush()

    def latest(self) -> AnalysisRun | None:
        stmt = select(AnalysisRun).order_by(analysis_run_table.c.started_at.desc()).limit(1)
        return self.session.execute(stmt).scalars().first()

    def delete_all(self) -> int:
        result = self.session.execute(delete(analysis_run_table))
        self.session.expire_all()
        return _rowcount(result)
