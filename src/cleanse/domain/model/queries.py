"""Read-side criteria and projections over issues."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cleanse.domain.errors import ValidationError

if TYPE_CHECKING:
    from cleanse.domain.model.enums import ResolutionStatus
    from cleanse.domain.model.issue import Issue


@dataclass(frozen=True, slots=True)
class IssueFilter:
    """Criteria for listing and counting issues.

    ``None`` leaves a field unconstrained. The default selects active issues
    only, which is what the triage views show.
    """

    is_active: bool | None = True
    issue_code: str | None = None
    rule_code: str | None = None
    is_ignored: bool | None = None
    resolution_status: ResolutionStatus | None = None
    assigned_to: str | None = None
    unassigned: bool = False

    def __post_init__(self) -> None:
        if self.unassigned and self.assigned_to is not None:
            raise ValidationError("Filter on assigned_to or unassigned, not both")

    @classmethod
    def everything(cls) -> IssueFilter:
        return cls(is_active=None)

    def matches(self, issue: Issue) -> bool:
        checks = (
            self.is_active is None or issue.is_active is self.is_active,
            self.issue_code is None or issue.issue_code == self.issue_code,
            self.rule_code is None or issue.rule_code == self.rule_code,
            self.is_ignored is None or issue.is_ignored is self.is_ignored,
            self.resolution_status is None or issue.resolution_status == self.resolution_status,
            self.assigned_to is None or issue.assigned_to == self.assigned_to,
            not self.unassigned or issue.assigned_to is None,
        )
        return all(checks)


@dataclass(frozen=True, slots=True)
class IssueCodeSummary:
    """Number of matching issues raised under one issue code."""

    issue_code: str
    count: int
