from __future__ import annotations

from datetime import timedelta
from threading import Event

import pytest

from cleanse.domain.analysis import AnalysisEngine, AnalysisRunTracker, run_analysis
from cleanse.domain.errors import ValidationError
from cleanse.domain.identity import generate_id
from cleanse.domain.issues import IssueCommandService
from cleanse.domain.model import AnalysisRunStatus, IssueAction, RuleDescriptor
from cleanse.domain.rules import RulePipeline, RulePipelineBuilder
from tests.helpers.fakes import FakeRunLock, InMemoryStore
from tests.helpers.holdings import (
    ExplodingRule,
    Holding,
    PredicateRule,
    holding_subject,
    missing_email_rule,
    not_registered_rule,
)

MISSING_EMAIL = Holding(lid="AB-12/345/0001", cph="12/345/0001")
UNREGISTERED = Holding(lid="AB-12/345/0002", cph="12/345/0002", registered=False)
CLEAN = Holding(lid="AB-12/345/0003", cph="12/345/0003", emails=("farm@example.test",))

MISSING_EMAIL_ID = generate_id([MISSING_EMAIL.lid, "NO_EMAIL"])
UNREGISTERED_ID = generate_id([UNREGISTERED.lid, "CTS_NOT_IN_SAM"])


def _pipeline() -> RulePipeline[Holding]:
    return (
        RulePipelineBuilder[Holding]()
        .add_rule(not_registered_rule())
        .stop_on_issue()
        .add_rule(missing_email_rule())
        .continue_always()
        .build()
    )


def _engine(
    issue_service: IssueCommandService,
    run_tracker: AnalysisRunTracker,
    pipeline: RulePipeline[Holding] | None = None,
    **kwargs,  # noqa: ANN003
) -> AnalysisEngine[Holding]:
    return AnalysisEngine(
        pipeline=pipeline or _pipeline(),
        issues=issue_service,
        runs=run_tracker,
        subject_of=holding_subject,
        **kwargs,
    )


def test_pass_records_issues_and_completes(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    lock = FakeRunLock()
    engine = _engine(issue_service, run_tracker)

    run = run_analysis(engine, run_tracker, lock, [MISSING_EMAIL, UNREGISTERED, CLEAN])

    assert run is not None
    assert run.status is AnalysisRunStatus.COMPLETED
    assert run.records_analyzed == 3
    assert run.total_records == 3
    assert run.issues_found == 2
    assert run.issues_resolved == 0
    assert set(store.issues) == {MISSING_EMAIL_ID, UNREGISTERED_ID}
    assert all(issue.operation_id == run.id for issue in store.issues.values())


def test_stop_on_issue_skips_later_rules(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    # unregistered and without email: only the registry issue is raised
    run_analysis(_engine(issue_service, run_tracker), run_tracker, FakeRunLock(), [UNREGISTERED])

    assert [issue.issue_code for issue in store.issues.values()] == ["CTS_NOT_IN_SAM"]


def test_fixed_record_is_resolved_by_the_next_pass(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    engine = _engine(issue_service, run_tracker)
    run_analysis(engine, run_tracker, FakeRunLock(), [MISSING_EMAIL, UNREGISTERED])

    fixed = Holding(lid=MISSING_EMAIL.lid, cph=MISSING_EMAIL.cph, emails=("new@example.test",))
    second = run_analysis(engine, run_tracker, FakeRunLock(), [fixed, UNREGISTERED])

    assert second is not None
    assert second.issues_found == 0
    assert second.issues_resolved == 1
    assert store.issues[MISSING_EMAIL_ID].is_active is False
    assert store.issues[UNREGISTERED_ID].is_active is True
    actions = [entry.action for entry in store.history_for(UNREGISTERED_ID)]
    assert actions == [IssueAction.CREATED, IssueAction.TOUCHED]


def test_reappearing_issue_counts_as_found(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker
) -> None:
    engine = _engine(issue_service, run_tracker)
    run_analysis(engine, run_tracker, FakeRunLock(), [MISSING_EMAIL])
    run_analysis(engine, run_tracker, FakeRunLock(), [CLEAN])

    third = run_analysis(engine, run_tracker, FakeRunLock(), [MISSING_EMAIL])

    assert third is not None
    assert third.issues_found == 1
    assert issue_service.get(MISSING_EMAIL_ID).is_active is True


def test_descriptors_are_looked_up_by_issue_code(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    descriptor = RuleDescriptor(
        rule_id="NO_EMAIL", rule_no="2", error_code="E-002", description="No email address"
    )
    engine = _engine(issue_service, run_tracker, descriptors={"NO_EMAIL": descriptor})

    run_analysis(engine, run_tracker, FakeRunLock(), [MISSING_EMAIL])

    issue = store.issues[MISSING_EMAIL_ID]
    assert issue.error_code == "E-002"
    assert issue.error_description == "No email address"
    assert issue.cts_lid_full_identifier == MISSING_EMAIL.lid


def test_progress_is_reported_and_lock_renewed_every_interval(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker
) -> None:
    lock = FakeRunLock()
    extension = timedelta(minutes=2)
    engine = _engine(issue_service, run_tracker, progress_interval=2, lock_extension=extension)
    records = [CLEAN] * 5

    run = run_analysis(engine, run_tracker, lock, records)

    assert run is not None
    assert run.status is AnalysisRunStatus.COMPLETED
    assert lock.handles[0].renewals == [extension, extension]


def test_failed_renewal_does_not_abort_the_pass(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker
) -> None:
    lock = FakeRunLock(renew_result=False)
    engine = _engine(issue_service, run_tracker, progress_interval=1)

    run = run_analysis(engine, run_tracker, lock, [CLEAN, CLEAN])

    assert run is not None
    assert run.status is AnalysisRunStatus.COMPLETED
    assert len(lock.handles[0].renewals) == 2


def test_progress_snapshot_reflects_counts(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    engine = _engine(issue_service, run_tracker, progress_interval=2)
    run = run_tracker.create_run(total_records=4)

    engine.execute(run.id, [MISSING_EMAIL, CLEAN, CLEAN], total_records=4)

    snapshot = store.runs[run.id]
    assert snapshot.status is AnalysisRunStatus.RUNNING
    assert snapshot.records_analyzed == 2
    assert snapshot.issues_found == 1
    assert snapshot.progress_percentage == 50.0
    assert snapshot.status_description == "Analyzed 2 of 4 records"


def test_progress_percentage_is_capped(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    engine = _engine(issue_service, run_tracker, progress_interval=1)
    run = run_tracker.create_run(total_records=1)

    engine.execute(run.id, [CLEAN, CLEAN], total_records=1)

    assert store.runs[run.id].progress_percentage == 100.0


def test_rule_failure_fails_run_without_sweeping(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    run_analysis(_engine(issue_service, run_tracker), run_tracker, FakeRunLock(), [MISSING_EMAIL])
    lock = FakeRunLock()
    failing = (
        RulePipelineBuilder[Holding]()
        .add_rule(ExplodingRule(failing_lid=UNREGISTERED.lid))
        .continue_always()
        .build()
    )

    run = run_analysis(
        _engine(issue_service, run_tracker, pipeline=failing),
        run_tracker,
        lock,
        [CLEAN, UNREGISTERED],
    )

    assert run is not None
    assert run.status is AnalysisRunStatus.FAILED
    assert run.error == f"registry lookup failed for {UNREGISTERED.lid}"
    assert store.issues[MISSING_EMAIL_ID].is_active is True
    assert lock.handles[0].released == 1


def test_cancellation_before_start_fails_run(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    run_analysis(_engine(issue_service, run_tracker), run_tracker, FakeRunLock(), [MISSING_EMAIL])
    cancel = Event()
    cancel.set()
    lock = FakeRunLock()

    run = run_analysis(
        _engine(issue_service, run_tracker), run_tracker, lock, [CLEAN], cancel_event=cancel
    )

    assert run is not None
    assert run.status is AnalysisRunStatus.FAILED
    assert run.error == "Analysis cancelled"
    assert run.records_analyzed == 0
    assert store.issues[MISSING_EMAIL_ID].is_active is True
    assert lock.handles[0].released == 1


def test_cancellation_mid_pass_skips_sweep(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    run_analysis(_engine(issue_service, run_tracker), run_tracker, FakeRunLock(), [MISSING_EMAIL])
    cancel = Event()

    def cancel_after_first(_holding: Holding) -> bool:
        cancel.set()
        return False

    pipeline = (
        RulePipelineBuilder[Holding]()
        .add_rule(PredicateRule("R99", "NEVER", cancel_after_first))
        .continue_always()
        .build()
    )
    trigger = pipeline.registrations[0].rule

    run = run_analysis(
        _engine(issue_service, run_tracker, pipeline=pipeline),
        run_tracker,
        FakeRunLock(),
        [CLEAN, CLEAN, CLEAN],
        cancel_event=cancel,
    )

    assert run is not None
    assert run.error == "Analysis cancelled"
    assert len(trigger.calls) == 1  # type: ignore[attr-defined]
    assert store.issues[MISSING_EMAIL_ID].is_active is True


def test_busy_lock_skips_the_pass(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    lock = FakeRunLock(busy=True)

    run = run_analysis(
        _engine(issue_service, run_tracker),
        run_tracker,
        lock,
        [MISSING_EMAIL],
        lock_name="nightly",
        lock_duration=timedelta(minutes=9),
    )

    assert run is None
    assert store.runs == {}
    assert store.issues == {}
    assert lock.requests == [("nightly", timedelta(minutes=9))]


def test_lock_is_released_after_a_successful_pass(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker
) -> None:
    lock = FakeRunLock()

    run_analysis(_engine(issue_service, run_tracker), run_tracker, lock, [CLEAN])

    assert lock.handles[0].released == 1


def test_generator_input_without_total_reports_zero_total(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker
) -> None:
    records = (holding for holding in [MISSING_EMAIL, CLEAN])

    run = run_analysis(_engine(issue_service, run_tracker), run_tracker, FakeRunLock(), records)

    assert run is not None
    assert run.total_records == 0
    assert run.records_analyzed == 2
    assert run.issues_found == 1


def test_progress_interval_must_be_positive(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker
) -> None:
    with pytest.raises(ValidationError, match="progress_interval"):
        _engine(issue_service, run_tracker, progress_interval=0)


@pytest.mark.parametrize(
    "malformed",
    [
        Holding(lid="", cph="12/345/0004"),
        Holding(lid="   ", cph="12/345/0004"),
        Holding(lid="AB-12/345/0004", cph="not-a-cph"),
        Holding(lid="AB-99/999/9999", cph="12/345/0004"),
    ],
)
def test_malformed_record_is_skipped_and_sweep_still_runs(
    issue_service: IssueCommandService,
    run_tracker: AnalysisRunTracker,
    store: InMemoryStore,
    malformed: Holding,
) -> None:
    engine = _engine(issue_service, run_tracker)
    run_analysis(engine, run_tracker, FakeRunLock(), [MISSING_EMAIL, UNREGISTERED])

    run = run_analysis(engine, run_tracker, FakeRunLock(), [UNREGISTERED, malformed, CLEAN])

    assert run is not None
    assert run.status is AnalysisRunStatus.COMPLETED
    assert run.records_analyzed == 3
    assert run.issues_resolved == 1
    assert store.issues[MISSING_EMAIL_ID].is_active is False
    assert set(store.issues) == {MISSING_EMAIL_ID, UNREGISTERED_ID}


def test_interrupted_pass_fails_run_and_reraises(
    issue_service: IssueCommandService, run_tracker: AnalysisRunTracker, store: InMemoryStore
) -> None:
    def interrupt(_holding: Holding) -> bool:
        raise KeyboardInterrupt

    pipeline = (
        RulePipelineBuilder[Holding]()
        .add_rule(PredicateRule("R99", "NEVER", interrupt))
        .continue_always()
        .build()
    )
    engine = _engine(issue_service, run_tracker, pipeline=pipeline)
    lock = FakeRunLock()

    with pytest.raises(KeyboardInterrupt):
        run_analysis(engine, run_tracker, lock, [CLEAN])

    (run,) = store.runs.values()
    assert run.status is AnalysisRunStatus.FAILED
    assert run.error == "Analysis cancelled"
    assert lock.handles[0].released == 1
