from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from cleanse.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)
from cleanse.domain.issues import IssueCommandService, RecordIssueCommand
from cleanse.domain.model import AnalysisRun, IssueAction, IssueFilter, IssueRecordResult
from cleanse.domain.rules import PipelineRuleResult, RuleResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def _command(lid: str, operation_id: str) -> RecordIssueCommand:
    return RecordIssueCommand(
        operation_id=operation_id,
        identity_parts=(lid, "NO_EMAIL"),
        outcome=PipelineRuleResult(
            result=RuleResult.issue("NO_EMAIL", {"EmailSAM": "farm@example.test"}),
            rule_code="R02",
        ),
        cph=lid.partition("-")[2],
        cts_lid_full_identifier=lid,
    )


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    assert is_started() is False
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    assert startup(engine=engine_b, force=True) is engine_b


def test_repositories_require_an_open_unit_of_work(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(StartupError):
        _ = SqlAlchemyUnitOfWork().repositories


def test_commit_persists_runs(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    run = AnalysisRun.create(10)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.runs.create(run)
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        stored = uow.repositories.runs.get(run.id)
        assert stored is not None
        assert stored.total_records == 10


def test_exception_rolls_back_pending_writes(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    run = AnalysisRun.create()

    with pytest.raises(RuntimeError), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.runs.create(run)
        raise RuntimeError("abort")

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.runs.get(run.id) is None


def test_issue_lifecycle_against_sqlite(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    service = IssueCommandService(sqlite_unit_of_work)

    assert service.record(_command("AB-12/345/0001", "opA")) is IssueRecordResult.CREATED
    assert service.record(_command("AB-12/345/0002", "opA")) is IssueRecordResult.CREATED
    assert service.record(_command("AB-12/345/0001", "opB")) is IssueRecordResult.TOUCHED
    assert service.deactivate_stale("opB") == 1
    assert service.record(_command("AB-12/345/0002", "opC")) is IssueRecordResult.REACTIVATED

    active = service.list_issues()
    assert [issue.cph for issue in active] == ["12/345/0002"]
    assert active[0].email_sam == "farm@example.test"
    actions = [entry.action for entry in service.history(active[0].id)]
    assert actions == [IssueAction.CREATED, IssueAction.DEACTIVATED, IssueAction.REACTIVATED]


def test_manual_actions_survive_sweep_against_sqlite(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    service = IssueCommandService(sqlite_unit_of_work)
    service.record(_command("AB-12/345/0001", "opA"))
    issue_id = service.list_issues()[0].id

    service.assign(issue_id, "bob", "alice")
    service.deactivate_stale("opB")

    issue = service.get(issue_id)
    assert issue.is_active is False
    assert issue.assigned_to == "bob"


def test_delete_all_clears_issues_and_history(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    service = IssueCommandService(sqlite_unit_of_work)
    service.record(_command("AB-12/345/0001", "opA"))
    service.record(_command("AB-12/345/0002", "opA"))

    assert service.delete_all() == 2
    assert service.list_issues(IssueFilter.everything()) == []
