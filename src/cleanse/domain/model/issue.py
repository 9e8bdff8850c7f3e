"""Issue aggregate root and its append-only history entries.

Every mutating method on :class:`Issue` returns the :class:`IssueHistoryEntry`
describing the change instead of storing it. The command service persists the
new state and the entry together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final
from uuid import uuid4

from cleanse.domain.errors import ValidationError
from cleanse.domain.model.enums import IssueAction, ResolutionStatus

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cleanse.domain.model.context import IssueContext

SYSTEM_ACTOR: Final[str] = "system"


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _require_actor(performed_by: str) -> str:
    if not performed_by or not performed_by.strip():
        raise ValidationError("performed_by is required")
    return performed_by


@dataclass(frozen=True, slots=True)
class RuleDescriptor:
    """User-facing description of the rule that raised an issue."""

    rule_id: str
    rule_no: str
    error_code: str
    description: str

    @classmethod
    def from_codes(cls, issue_code: str, rule_code: str) -> RuleDescriptor:
        """Fallback descriptor for rules that are not in a catalog."""
        return cls(rule_id=issue_code, rule_no=rule_code, error_code=issue_code, description="")


@dataclass(eq=False, kw_only=True)
class IssueHistoryEntry:
    """A single lineage entry. Stored separately from the issue and never updated."""

    id: str = field(default_factory=lambda: str(uuid4()))
    issue_id: str
    action: IssueAction
    performed_by: str = SYSTEM_ACTOR
    detail: str | None = None
    occurred_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        issue_id: str,
        action: IssueAction,
        performed_by: str = SYSTEM_ACTOR,
        detail: str | None = None,
        *,
        occurred_at: datetime | None = None,
    ) -> IssueHistoryEntry:
        return cls(
            issue_id=issue_id,
            action=action,
            performed_by=performed_by,
            detail=detail,
            occurred_at=occurred_at or utcnow(),
        )


@dataclass(eq=False, kw_only=True)
class Issue:
    """A data-quality finding for one (record, rule) pair.

    ``is_active``, ``is_ignored`` and ``resolution_status`` are independent:
    the rule firing again never clears a manual flag, and manual actions never
    change whether the rule currently holds.
    """

    id: str
    operation_id: str = ""

    cts_lid_full_identifier: str = ""
    cph: str
    issue_code: str
    rule_code: str
    error_code: str
    error_description: str

    email_cts: list[str] | None = None
    email_sam: str | None = None
    tel_cts: list[str] | None = None
    tel_sam: str | None = None
    fsa: str | None = None
    context_data: dict[str, Any] | None = None

    created_at: datetime = field(default_factory=utcnow)
    last_updated_at: datetime = field(default_factory=utcnow)

    is_active: bool = True
    is_ignored: bool = False
    resolution_status: ResolutionStatus = ResolutionStatus.NONE
    assigned_to: str | None = None

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        thumbprint: str,
        operation_id: str,
        descriptor: RuleDescriptor,
        cph: str,
        *,
        cts_lid_full_identifier: str | None = None,
        context: IssueContext | None = None,
        context_data: Mapping[str, Any] | None = None,
    ) -> tuple[Issue, IssueHistoryEntry]:
        """Create a new active issue from a rule activation."""

        now = utcnow()
        issue = cls(
            id=thumbprint,
            operation_id=operation_id,
            issue_code=descriptor.rule_id,
            rule_code=descriptor.rule_no,
            error_code=descriptor.error_code,
            error_description=descriptor.description,
            cts_lid_full_identifier=cts_lid_full_identifier or "",
            cph=cph,
            created_at=now,
            last_updated_at=now,
            is_active=True,
        )
        issue.apply_context(context, context_data)
        history = IssueHistoryEntry.create(
            thumbprint, IssueAction.CREATED, SYSTEM_ACTOR, "Issue detected", occurred_at=now
        )
        return issue, history

    def reactivate(self, operation_id: str) -> IssueHistoryEntry:
        """Reactivate a previously deactivated issue."""
        self.is_active = True
        self.operation_id = operation_id
        self.last_updated_at = utcnow()
        return self._history(IssueAction.REACTIVATED, SYSTEM_ACTOR, "Issue reactivated by analysis")

    def touch(self, operation_id: str) -> IssueHistoryEntry:
        """Stamp an already active issue with the current operation."""
        self.operation_id = operation_id
        self.last_updated_at = utcnow()
        return self._history(IssueAction.TOUCHED, SYSTEM_ACTOR, "Issue confirmed by analysis")

    def deactivate(self, performed_by: str = SYSTEM_ACTOR) -> IssueHistoryEntry:
        """Mark the rule condition as no longer holding."""
        self.is_active = False
        self.last_updated_at = utcnow()
        return self._history(IssueAction.DEACTIVATED, performed_by, "Issue no longer detected")

    def ignore(self, performed_by: str) -> IssueHistoryEntry:
        _require_actor(performed_by)
        self.is_ignored = True
        self.last_updated_at = utcnow()
        return self._history(IssueAction.IGNORED, performed_by)

    def unignore(self, performed_by: str) -> IssueHistoryEntry:
        _require_actor(performed_by)
        self.is_ignored = False
        self.last_updated_at = utcnow()
        return self._history(IssueAction.UNIGNORED, performed_by)

    def update_resolution_status(
        self, status: ResolutionStatus, performed_by: str
    ) -> IssueHistoryEntry:
        _require_actor(performed_by)
        previous = self.resolution_status
        self.resolution_status = status
        self.last_updated_at = utcnow()
        return self._history(
            IssueAction.RESOLUTION_STATUS_CHANGED,
            performed_by,
            f"ResolutionStatus: {previous.name} → {status.name}",
        )

    def assign(self, assigned_to: str, performed_by: str) -> IssueHistoryEntry:
        _require_actor(performed_by)
        if not assigned_to or not assigned_to.strip():
            raise ValidationError("assigned_to is required")
        self.assigned_to = assigned_to
        self.last_updated_at = utcnow()
        return self._history(IssueAction.ASSIGNED, performed_by, f"Assigned to {assigned_to}")

    def unassign(self, performed_by: str) -> IssueHistoryEntry:
        _require_actor(performed_by)
        previous = self.assigned_to
        self.assigned_to = None
        self.last_updated_at = utcnow()
        return self._history(IssueAction.UNASSIGNED, performed_by, f"Unassigned from {previous}")

    def apply_context(
        self,
        context: IssueContext | None,
        context_data: Mapping[str, Any] | None = None,
    ) -> None:
        """Copy contact details from a rule's context payload, if any."""

        if context_data:
            self.context_data = dict(context_data)
        if context is None:
            return
        self.email_cts = list(context.email_cts) if context.email_cts else None
        self.email_sam = context.email_sam
        self.tel_cts = list(context.tel_cts) if context.tel_cts else None
        self.tel_sam = context.tel_sam
        self.fsa = context.fsa

    def _history(
        self, action: IssueAction, performed_by: str, detail: str | None = None
    ) -> IssueHistoryEntry:
        return IssueHistoryEntry.create(
            self.id, action, performed_by, detail, occurred_at=self.last_updated_at
        )
