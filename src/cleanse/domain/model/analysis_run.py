"""Aggregate recording the lifecycle of one analysis pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from cleanse.domain.errors import AnalysisRunStateError, ValidationError
from cleanse.domain.model.enums import AnalysisRunStatus
from cleanse.domain.model.issue import utcnow

if TYPE_CHECKING:
    from datetime import datetime


def _require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")


@dataclass(eq=False, kw_only=True)
class AnalysisRun:
    """Running -> Completed | Failed. Both end states are terminal."""

    id: str = field(default_factory=lambda: str(uuid4()))
    status: AnalysisRunStatus = AnalysisRunStatus.RUNNING
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    progress_percentage: float = 0.0
    status_description: str = ""
    records_analyzed: int = 0
    total_records: int = 0
    issues_found: int = 0
    issues_resolved: int = 0
    error: str | None = None
    duration_ms: int | None = None
    report_object_key: str | None = None
    report_url: str | None = None

    @classmethod
    def create(cls, total_records: int = 0) -> AnalysisRun:
        _require_non_negative("total_records", total_records)
        return cls(
            status=AnalysisRunStatus.RUNNING,
            started_at=utcnow(),
            total_records=total_records,
            status_description="Initializing analysis...",
        )

    @property
    def is_running(self) -> bool:
        return self.status is AnalysisRunStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        return not self.is_running

    def update_progress(  # noqa: PLR0913
        self,
        progress_percentage: float,
        status_description: str,
        records_analyzed: int,
        issues_found: int,
        issues_resolved: int,
    ) -> None:
        """Overwrite (not add to) the progress counters."""

        self._require_running("update progress of")
        if not 0.0 <= progress_percentage <= 100.0:  # noqa: PLR2004
            raise ValidationError(
                f"progress_percentage must be between 0 and 100, got {progress_percentage}"
            )
        for name, value in (
            ("records_analyzed", records_analyzed),
            ("issues_found", issues_found),
            ("issues_resolved", issues_resolved),
        ):
            _require_non_negative(name, value)
        self.progress_percentage = progress_percentage
        self.status_description = status_description
        self.records_analyzed = records_analyzed
        self.issues_found = issues_found
        self.issues_resolved = issues_resolved

    def complete(
        self,
        records_analyzed: int,
        issues_found: int,
        issues_resolved: int,
        duration_ms: int,
    ) -> None:
        self._require_running("complete")
        _require_non_negative("duration_ms", duration_ms)
        self.status = AnalysisRunStatus.COMPLETED
        self.completed_at = utcnow()
        self.progress_percentage = 100.0
        self.status_description = "Analysis completed"
        self.records_analyzed = records_analyzed
        self.issues_found = issues_found
        self.issues_resolved = issues_resolved
        self.duration_ms = duration_ms

    def fail(self, error: str, duration_ms: int) -> None:
        self._require_running("fail")
        _require_non_negative("duration_ms", duration_ms)
        self.status = AnalysisRunStatus.FAILED
        self.completed_at = utcnow()
        self.status_description = "Analysis failed"
        self.error = error
        self.duration_ms = duration_ms

    def set_report_details(self, object_key: str, report_url: str) -> None:
        # permitted after terminal status: reports are delivered post hoc
        self.report_object_key = object_key
        self.report_url = report_url

    def update_report_url(self, report_url: str) -> None:
        self.report_url = report_url

    def _require_running(self, verb: str) -> None:
        if not self.is_running:
            raise AnalysisRunStateError(
                f"Cannot {verb} analysis run '{self.id}' in status {self.status.name}"
            )
