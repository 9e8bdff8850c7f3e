"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class IssueAction(StrEnum):
    CREATED = "created"
    REACTIVATED = "reactivated"
    DEACTIVATED = "deactivated"
    TOUCHED = "touched"
    IGNORED = "ignored"
    UNIGNORED = "unignored"
    RESOLUTION_STATUS_CHANGED = "resolution_status_changed"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


class ResolutionStatus(StrEnum):
    """Manual workflow status. Independent of whether the rule still fires."""

    NONE = "none"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class AnalysisRunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class IssueRecordResult(StrEnum):
    """Outcome of recording a rule outcome against an issue."""

    CREATED = "created"
    REACTIVATED = "reactivated"
    TOUCHED = "touched"
    NO_CHANGE = "no_change"
