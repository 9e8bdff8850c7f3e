"""Application service owning every write to issues and their history.

Each public operation opens exactly one unit of work. The issue's new state and
the history entry describing the transition are committed together; if either
write fails the unit of work rolls back and neither is stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from cleanse.domain.errors import IssueNotFoundError, ValidationError
from cleanse.domain.identity import generate_id
from cleanse.domain.model import (
    SYSTEM_ACTOR,
    Issue,
    IssueAction,
    IssueContext,
    IssueFilter,
    IssueHistoryEntry,
    IssueRecordResult,
    ResolutionStatus,
    RuleDescriptor,
    parse_location,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from cleanse.domain.model import IssueCodeSummary
    from cleanse.domain.ports import CleanseUnitOfWork, CleanseUnitOfWorkFactory
    from cleanse.domain.rules import PipelineRuleResult

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecordIssueCommand:
    """Assert that the rule behind ``outcome`` currently fires for a record."""

    operation_id: str
    identity_parts: Sequence[str]
    outcome: PipelineRuleResult
    cph: str
    cts_lid_full_identifier: str | None = None
    descriptor: RuleDescriptor | None = None

    @property
    def thumbprint(self) -> str:
        return generate_id(self.identity_parts)

    def resolve_descriptor(self) -> RuleDescriptor:
        if self.descriptor is not None:
            return self.descriptor
        issue_code = self.outcome.result.issue_code or ""
        return RuleDescriptor.from_codes(issue_code, self.outcome.rule_code)


class IssueCommandService:
    """Single-issue commands plus the reconciliation sweep."""

    def __init__(self, unit_of_work_factory: CleanseUnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def record(self, command: RecordIssueCommand) -> IssueRecordResult:
        """Create, reactivate or touch the issue identified by the command.

        Outcomes without an issue are a no-op and return ``NO_CHANGE``.
        """

        result = command.outcome.result
        if not result.has_issue:
            return IssueRecordResult.NO_CHANGE
        if not command.operation_id:
            raise ValidationError("operation_id is required")
        parse_location(command.cph, command.cts_lid_full_identifier)

        thumbprint = command.thumbprint
        context = IssueContext.from_mapping(result.context_data)

        with self._unit_of_work_factory() as uow:
            issues = uow.repositories.issues
            existing = issues.get(thumbprint)

            if existing is None:
                issue, entry = Issue.create(
                    thumbprint,
                    command.operation_id,
                    command.resolve_descriptor(),
                    command.cph,
                    cts_lid_full_identifier=command.cts_lid_full_identifier,
                    context=context,
                    context_data=result.context_data,
                )
                outcome = IssueRecordResult.CREATED
            else:
                issue = existing
                if issue.is_active:
                    entry = issue.touch(command.operation_id)
                    outcome = IssueRecordResult.TOUCHED
                else:
                    entry = issue.reactivate(command.operation_id)
                    outcome = IssueRecordResult.REACTIVATED
                issue.apply_context(context, result.context_data)

            issues.upsert(issue)
            uow.repositories.history.append(entry)
            uow.commit()

        log.debug("Recorded issue %s (%s): %s", thumbprint, issue.issue_code, outcome)
        return outcome

    def deactivate(self, issue_id: str, performed_by: str = SYSTEM_ACTOR) -> Issue:
        return self._apply(issue_id, lambda issue: issue.deactivate(performed_by))

    def deactivate_stale(self, operation_id: str) -> int:
        """Close every active issue the pass ``operation_id`` did not touch.

        Must only be called after the pass has visited every record. Calling it
        again with the same id closes nothing and returns 0.
        """

        if not operation_id:
            raise ValidationError("operation_id is required")

        with self._unit_of_work_factory() as uow:
            closed_ids = uow.repositories.issues.deactivate_stale(operation_id)
            if closed_ids:
                uow.repositories.history.append_batch(
                    [
                        IssueHistoryEntry.create(
                            issue_id,
                            IssueAction.DEACTIVATED,
                            SYSTEM_ACTOR,
                            "Issue no longer detected",
                        )
                        for issue_id in closed_ids
                    ]
                )
            uow.commit()

        log.info("Deactivated %s stale issue(s) for operation %s", len(closed_ids), operation_id)
        return len(closed_ids)

    def ignore(self, issue_id: str, performed_by: str) -> Issue:
        return self._apply(issue_id, lambda issue: issue.ignore(performed_by))

    def unignore(self, issue_id: str, performed_by: str) -> Issue:
        return self._apply(issue_id, lambda issue: issue.unignore(performed_by))

    def update_resolution_status(
        self, issue_id: str, status: ResolutionStatus, performed_by: str
    ) -> Issue:
        return self._apply(
            issue_id, lambda issue: issue.update_resolution_status(status, performed_by)
        )

    def assign(self, issue_id: str, assigned_to: str, performed_by: str) -> Issue:
        return self._apply(issue_id, lambda issue: issue.assign(assigned_to, performed_by))

    def unassign(self, issue_id: str, performed_by: str) -> Issue:
        return self._apply(issue_id, lambda issue: issue.unassign(performed_by))

    def get(self, issue_id: str) -> Issue:
        with self._unit_of_work_factory() as uow:
            return _load_required(uow, issue_id)

    def list_issues(self, issue_filter: IssueFilter | None = None) -> list[Issue]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.issues.list_issues(issue_filter or IssueFilter())

    def count(self, issue_filter: IssueFilter | None = None) -> int:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.issues.count(issue_filter or IssueFilter())

    def count_active(self) -> int:
        return self.count(IssueFilter(is_active=True))

    def summary_by_code(self, issue_filter: IssueFilter | None = None) -> list[IssueCodeSummary]:
        """Issue counts per issue code, ordered by code; active issues by default."""

        with self._unit_of_work_factory() as uow:
            return uow.repositories.issues.summary_by_code(issue_filter or IssueFilter())

    def history(self, issue_id: str) -> list[IssueHistoryEntry]:
        with self._unit_of_work_factory() as uow:
            _load_required(uow, issue_id)
            return uow.repositories.history.list_for_issue(issue_id)

    def delete_all(self) -> int:
        """Purge all history entries and issues; return the number of issues removed."""

        with self._unit_of_work_factory() as uow:
            uow.repositories.history.delete_all()
            deleted = uow.repositories.issues.delete_all()
            uow.commit()
        log.warning("Deleted %s issue(s) and their history", deleted)
        return deleted

    def _apply(
        self, issue_id: str, transition: Callable[[Issue], IssueHistoryEntry]
    ) -> Issue:
        with self._unit_of_work_factory() as uow:
            issue = _load_required(uow, issue_id)
            entry = transition(issue)
            uow.repositories.issues.upsert(issue)
            uow.repositories.history.append(entry)
            uow.commit()
        return issue


def _load_required(uow: CleanseUnitOfWork, issue_id: str) -> Issue:
    issue = uow.repositories.issues.get(issue_id)
    if issue is None:
        raise IssueNotFoundError(issue_id)
    return issue
