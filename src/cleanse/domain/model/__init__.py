"""Public domain model surface."""

from __future__ import annotations

from cleanse.domain.model.analysis_run import AnalysisRun
from cleanse.domain.model.context import IssueContext
from cleanse.domain.model.enums import (
    AnalysisRunStatus,
    IssueAction,
    IssueRecordResult,
    ResolutionStatus,
)
from cleanse.domain.model.issue import (
    SYSTEM_ACTOR,
    Issue,
    IssueHistoryEntry,
    RuleDescriptor,
    utcnow,
)
from cleanse.domain.model.queries import IssueCodeSummary, IssueFilter
from cleanse.domain.model.registry import Cph, LidFullIdentifier, parse_location

__all__ = [  # noqa: RUF022
    # issues
    "Issue",
    "IssueHistoryEntry",
    "IssueContext",
    "RuleDescriptor",
    "SYSTEM_ACTOR",
    # queries
    "IssueCodeSummary",
    "IssueFilter",
    # runs
    "AnalysisRun",
    # registry identifiers
    "Cph",
    "LidFullIdentifier",
    "parse_location",
    # enums
    "AnalysisRunStatus",
    "IssueAction",
    "IssueRecordResult",
    "ResolutionStatus",
    # helpers
    "utcnow",
]
