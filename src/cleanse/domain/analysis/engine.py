"""Drive one analysis pass: rules per record, issue recording, sweep, run status.

A pass has two strictly ordered phases. The *touch* phase streams every input
record through the rule pipeline and records each issue-bearing outcome, which
stamps the issue with the run id. Only after every record has been visited does
the *sweep* close the active issues that the pass did not stamp. A pass that
fails or is cancelled never reaches the sweep, so issues are not closed on the
strength of a partial pass.
"""

from __future__ import annotations

import time
from collections.abc import Sized
from dataclasses import dataclass
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Final

from cleanse.domain.errors import AnalysisCancelledError, ValidationError
from cleanse.domain.identity import generate_id
from cleanse.domain.issues import RecordIssueCommand
from cleanse.domain.model import IssueRecordResult, parse_location
from cleanse.domain.rules import AnalysisContext

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from threading import Event

    from cleanse.domain.analysis.runs import AnalysisRunTracker
    from cleanse.domain.issues import IssueCommandService
    from cleanse.domain.model import AnalysisRun, RuleDescriptor
    from cleanse.domain.ports import RunLock, RunLockHandle
    from cleanse.domain.rules import RulePipeline

log = getLogger(__name__)

DEFAULT_LOCK_NAME: Final[str] = "cleanse-analysis"
DEFAULT_LOCK_DURATION: Final[timedelta] = timedelta(minutes=5)
DEFAULT_PROGRESS_INTERVAL: Final[int] = 100
CANCELLED_MESSAGE: Final[str] = "Analysis cancelled"

_FOUND_RESULTS: Final = frozenset({IssueRecordResult.CREATED, IssueRecordResult.REACTIVATED})


@dataclass(frozen=True, slots=True)
class IssueSubject:
    """Identifiers of the record an issue is raised against."""

    record_id: str
    cph: str
    cts_lid_full_identifier: str | None = None

    def validate(self) -> None:
        """Raise :class:`ValidationError` unless issues can be keyed and located."""

        if not self.record_id or not self.record_id.strip():
            raise ValidationError("record id is blank")
        generate_id([self.record_id])
        parse_location(self.cph, self.cts_lid_full_identifier)


@dataclass(slots=True)
class AnalysisMetrics:
    """Counters accumulated while a pass runs."""

    records_analyzed: int = 0
    records_skipped: int = 0
    issues_found: int = 0
    issues_resolved: int = 0


class AnalysisEngine[TInput]:
    """Apply a rule pipeline to a stream of records and record the resulting issues."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        pipeline: RulePipeline[TInput],
        issues: IssueCommandService,
        runs: AnalysisRunTracker,
        subject_of: Callable[[TInput], IssueSubject],
        descriptors: Mapping[str, RuleDescriptor] | None = None,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        lock_extension: timedelta = DEFAULT_LOCK_DURATION,
    ) -> None:
        if progress_interval < 1:
            raise ValidationError("progress_interval must be positive")
        self.pipeline = pipeline
        self.issues = issues
        self.runs = runs
        self._subject_of = subject_of
        self._descriptors: Mapping[str, RuleDescriptor] = descriptors or {}
        self._progress_interval = progress_interval
        self._lock_extension = lock_extension

    def execute(
        self,
        run_id: str,
        records: Iterable[TInput],
        *,
        total_records: int = 0,
        cancel_event: Event | None = None,
        lock_handle: RunLockHandle | None = None,
    ) -> AnalysisMetrics:
        """Run the touch phase of ``run_id`` over ``records``.

        Raises :class:`AnalysisCancelledError` if ``cancel_event`` is set
        between two records or after the last one.
        """

        metrics = AnalysisMetrics()
        self.runs.update_progress(run_id, 0.0, f"Analyzed 0 of {total_records} records", 0, 0, 0)

        for record in records:
            _raise_if_cancelled(cancel_event)
            self._analyze_record(run_id, record, metrics)
            metrics.records_analyzed += 1
            if metrics.records_analyzed % self._progress_interval == 0:
                self._report_progress(run_id, metrics, total_records)
                _renew(lock_handle, self._lock_extension)

        _raise_if_cancelled(cancel_event)
        return metrics

    def sweep(self, run_id: str) -> int:
        return self.issues.deactivate_stale(run_id)

    def _analyze_record(self, run_id: str, record: TInput, metrics: AnalysisMetrics) -> None:
        subject = self._subject_of(record)
        try:
            subject.validate()
        except ValidationError as exc:
            # skipped rows still count as analysed
            log.warning("Run %s: skipping record %r: %s", run_id, subject.record_id, exc)
            metrics.records_skipped += 1
            return
        context = AnalysisContext(operation_id=run_id)
        for outcome in self.pipeline.execute(record, context):
            result = outcome.result
            if not result.has_issue or result.issue_code is None:
                continue
            command = RecordIssueCommand(
                operation_id=run_id,
                identity_parts=(subject.record_id, result.issue_code),
                outcome=outcome,
                cph=subject.cph,
                cts_lid_full_identifier=subject.cts_lid_full_identifier,
                descriptor=self._descriptors.get(result.issue_code),
            )
            if self.issues.record(command) in _FOUND_RESULTS:
                metrics.issues_found += 1

    def _report_progress(self, run_id: str, metrics: AnalysisMetrics, total_records: int) -> None:
        analyzed = metrics.records_analyzed
        percentage = min(100.0, analyzed / total_records * 100) if total_records > 0 else 0.0
        log.debug("Run %s: analyzed %s of %s records", run_id, analyzed, total_records)
        self.runs.update_progress(
            run_id,
            percentage,
            f"Analyzed {analyzed} of {total_records} records",
            analyzed,
            metrics.issues_found,
            metrics.issues_resolved,
        )


def run_analysis[TInput](  # noqa: PLR0913
    engine: AnalysisEngine[TInput],
    tracker: AnalysisRunTracker,
    lock: RunLock,
    records: Iterable[TInput],
    *,
    total_records: int | None = None,
    cancel_event: Event | None = None,
    lock_name: str = DEFAULT_LOCK_NAME,
    lock_duration: timedelta = DEFAULT_LOCK_DURATION,
) -> AnalysisRun | None:
    """Run a complete pass under the run lock and return the final run.

    Returns ``None`` without creating a run if another pass holds the lock.
    Failures and cancellation are recorded on the run, which is returned in
    its ``FAILED`` state. An interrupt such as ``KeyboardInterrupt`` also fails
    the run and is then re-raised. The lock is released in every case.
    """

    handle = lock.try_acquire(lock_name, lock_duration)
    if handle is None:
        log.info("Analysis lock %r is held elsewhere; not starting a pass", lock_name)
        return None

    with handle:
        if total_records is None:
            total_records = len(records) if isinstance(records, Sized) else 0
        run = tracker.create_run(total_records)
        log.info("Starting analysis run %s over %s record(s)", run.id, total_records)
        started = time.monotonic()
        try:
            metrics = engine.execute(
                run.id,
                records,
                total_records=total_records,
                cancel_event=cancel_event,
                lock_handle=handle,
            )
            if metrics.records_skipped:
                log.warning(
                    "Analysis run %s skipped %s malformed record(s)",
                    run.id,
                    metrics.records_skipped,
                )
            metrics.issues_resolved = engine.sweep(run.id)
            return tracker.complete(
                run.id,
                metrics.records_analyzed,
                metrics.issues_found,
                metrics.issues_resolved,
                _elapsed_ms(started),
            )
        except AnalysisCancelledError:
            log.warning("Analysis run %s was cancelled", run.id)
            return tracker.fail(run.id, CANCELLED_MESSAGE, _elapsed_ms(started))
        except Exception as exc:
            log.exception("Analysis run %s failed", run.id)
            return tracker.fail(run.id, str(exc) or type(exc).__name__, _elapsed_ms(started))
        except BaseException:
            log.warning("Analysis run %s was interrupted", run.id)
            tracker.fail(run.id, CANCELLED_MESSAGE, _elapsed_ms(started))
            raise


def _raise_if_cancelled(cancel_event: Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError(CANCELLED_MESSAGE)


def _renew(lock_handle: RunLockHandle | None, extension: timedelta) -> None:
    if lock_handle is None:
        return
    if not lock_handle.try_renew(extension):
        log.warning("Could not renew analysis lock %r", lock_handle.name)


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.monotonic() - started) * 1000))
