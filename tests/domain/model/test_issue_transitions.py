from __future__ import annotations

import pytest

from cleanse.domain.errors import ValidationError
from cleanse.domain.model import (
    SYSTEM_ACTOR,
    Issue,
    IssueAction,
    IssueContext,
    ResolutionStatus,
    RuleDescriptor,
)

DESCRIPTOR = RuleDescriptor(
    rule_id="NO_EMAIL",
    rule_no="R02",
    error_code="E-002",
    description="Holding has no e-mail address",
)


def _new_issue(**kwargs: object) -> Issue:
    issue, _ = Issue.create(
        "thumb-1", "op-1", DESCRIPTOR, "12/345/6789", **kwargs  # type: ignore[arg-type]
    )
    return issue


def test_create_returns_active_issue_and_created_entry() -> None:
    issue, entry = Issue.create(
        "thumb-1",
        "op-1",
        DESCRIPTOR,
        "12/345/6789",
        cts_lid_full_identifier="AB-12/345/6789",
    )

    assert issue.id == "thumb-1"
    assert issue.operation_id == "op-1"
    assert issue.is_active is True
    assert issue.is_ignored is False
    assert issue.resolution_status is ResolutionStatus.NONE
    assert issue.issue_code == "NO_EMAIL"
    assert issue.rule_code == "R02"
    assert issue.error_code == "E-002"
    assert issue.error_description == "Holding has no e-mail address"
    assert issue.cts_lid_full_identifier == "AB-12/345/6789"
    assert issue.created_at == issue.last_updated_at
    assert entry.issue_id == "thumb-1"
    assert entry.action is IssueAction.CREATED
    assert entry.performed_by == SYSTEM_ACTOR
    assert entry.detail == "Issue detected"


def test_create_copies_context() -> None:
    context = IssueContext.from_mapping({"EmailCTS": "a@example.org", "FSA": "NW"})

    issue = _new_issue(context=context, context_data={"FSA": "NW", "Other": 1})

    assert issue.email_cts == ["a@example.org"]
    assert issue.fsa == "NW"
    assert issue.context_data == {"FSA": "NW", "Other": 1}


def test_touch_stamps_operation_without_changing_activity() -> None:
    issue = _new_issue()
    before = issue.last_updated_at

    entry = issue.touch("op-2")

    assert issue.operation_id == "op-2"
    assert issue.is_active is True
    assert issue.last_updated_at >= before
    assert entry.action is IssueAction.TOUCHED
    assert entry.detail == "Issue confirmed by analysis"


def test_deactivate_then_reactivate() -> None:
    issue = _new_issue()

    closed = issue.deactivate()
    assert issue.is_active is False
    assert closed.action is IssueAction.DEACTIVATED
    assert closed.detail == "Issue no longer detected"

    reopened = issue.reactivate("op-3")
    assert issue.is_active is True
    assert issue.operation_id == "op-3"
    assert reopened.action is IssueAction.REACTIVATED
    assert reopened.detail == "Issue reactivated by analysis"


def test_manual_flags_are_independent_of_activity() -> None:
    issue = _new_issue()
    issue.ignore("alice")
    issue.update_resolution_status(ResolutionStatus.IN_PROGRESS, "alice")

    issue.deactivate()
    issue.reactivate("op-2")

    assert issue.is_ignored is True
    assert issue.resolution_status is ResolutionStatus.IN_PROGRESS


def test_ignore_and_unignore_record_actor() -> None:
    issue = _new_issue()

    ignored = issue.ignore("alice")
    assert issue.is_ignored is True
    assert ignored.action is IssueAction.IGNORED
    assert ignored.performed_by == "alice"

    unignored = issue.unignore("bob")
    assert issue.is_ignored is False
    assert unignored.action is IssueAction.UNIGNORED
    assert unignored.performed_by == "bob"


def test_update_resolution_status_describes_previous_and_new() -> None:
    issue = _new_issue()

    entry = issue.update_resolution_status(ResolutionStatus.TODO, "alice")

    assert issue.resolution_status is ResolutionStatus.TODO
    assert entry.action is IssueAction.RESOLUTION_STATUS_CHANGED
    assert entry.detail == "ResolutionStatus: NONE → TODO"


def test_assign_and_unassign_name_the_target() -> None:
    issue = _new_issue()

    assigned = issue.assign("carol", "alice")
    assert issue.assigned_to == "carol"
    assert assigned.action is IssueAction.ASSIGNED
    assert assigned.detail == "Assigned to carol"

    unassigned = issue.unassign("alice")
    assert issue.assigned_to is None
    assert unassigned.action is IssueAction.UNASSIGNED
    assert unassigned.detail == "Unassigned from carol"


@pytest.mark.parametrize("actor", ["", "   "])
def test_manual_actions_require_actor(actor: str) -> None:
    issue = _new_issue()

    with pytest.raises(ValidationError, match="performed_by"):
        issue.ignore(actor)
    with pytest.raises(ValidationError, match="performed_by"):
        issue.update_resolution_status(ResolutionStatus.TODO, actor)

    assert issue.is_ignored is False
    assert issue.resolution_status is ResolutionStatus.NONE


def test_assign_requires_assignee() -> None:
    issue = _new_issue()

    with pytest.raises(ValidationError, match="assigned_to"):
        issue.assign(" ", "alice")
    assert issue.assigned_to is None


def test_history_entry_time_matches_transition_time() -> None:
    issue = _new_issue()

    entry = issue.assign("carol", "alice")

    assert entry.occurred_at == issue.last_updated_at


def test_descriptor_fallback_uses_codes() -> None:
    descriptor = RuleDescriptor.from_codes("NO_EMAIL", "R02")

    assert descriptor.rule_id == "NO_EMAIL"
    assert descriptor.error_code == "NO_EMAIL"
    assert descriptor.rule_no == "R02"
    assert descriptor.description == ""
