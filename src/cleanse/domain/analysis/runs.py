"""Application service owning every write to analysis runs."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from cleanse.domain.errors import AnalysisRunNotFoundError
from cleanse.domain.model import AnalysisRun

if TYPE_CHECKING:
    from collections.abc import Callable

    from cleanse.domain.ports import CleanseUnitOfWork, CleanseUnitOfWorkFactory

log = getLogger(__name__)


class AnalysisRunTracker:
    """Create runs, report their progress and record their terminal status."""

    def __init__(self, unit_of_work_factory: CleanseUnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def create_run(self, total_records: int = 0) -> AnalysisRun:
        run = AnalysisRun.create(total_records)
        with self._unit_of_work_factory() as uow:
            uow.repositories.runs.create(run)
            uow.commit()
        log.info("Created analysis run %s", run.id)
        return run

    def update_progress(  # noqa: PLR0913
        self,
        run_id: str,
        progress_percentage: float,
        status_description: str,
        records_analyzed: int,
        issues_found: int,
        issues_resolved: int,
    ) -> AnalysisRun:
        return self._apply(
            run_id,
            lambda run: run.update_progress(
                progress_percentage,
                status_description,
                records_analyzed,
                issues_found,
                issues_resolved,
            ),
        )

    def complete(
        self,
        run_id: str,
        records_analyzed: int,
        issues_found: int,
        issues_resolved: int,
        duration_ms: int,
    ) -> AnalysisRun:
        run = self._apply(
            run_id,
            lambda run: run.complete(records_analyzed, issues_found, issues_resolved, duration_ms),
        )
        log.info(
            "Analysis run %s completed: %s record(s), %s found, %s resolved in %sms",
            run_id,
            records_analyzed,
            issues_found,
            issues_resolved,
            duration_ms,
        )
        return run

    def fail(self, run_id: str, error: str, duration_ms: int) -> AnalysisRun:
        run = self._apply(run_id, lambda run: run.fail(error, duration_ms))
        log.warning("Analysis run %s failed after %sms: %s", run_id, duration_ms, error)
        return run

    def set_report_details(self, run_id: str, object_key: str, report_url: str) -> AnalysisRun:
        return self._apply(run_id, lambda run: run.set_report_details(object_key, report_url))

    def update_report_url(self, run_id: str, report_url: str) -> AnalysisRun:
        return self._apply(run_id, lambda run: run.update_report_url(report_url))

    def get(self, run_id: str) -> AnalysisRun:
        with self._unit_of_work_factory() as uow:
            return _load_required(uow, run_id)

    def latest(self) -> AnalysisRun | None:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.runs.latest()

    def delete_all(self) -> int:
        with self._unit_of_work_factory() as uow:
            deleted = uow.repositories.runs.delete_all()
            uow.commit()
        return deleted

    def _apply(self, run_id: str, transition: Callable[[AnalysisRun], None]) -> AnalysisRun:
        with self._unit_of_work_factory() as uow:
            run = _load_required(uow, run_id)
            transition(run)
            uow.repositories.runs.update(run)
            uow.commit()
        return run


def _load_required(uow: CleanseUnitOfWork, run_id: str) -> AnalysisRun:
    run = uow.repositories.runs.get(run_id)
    if run is None:
        raise AnalysisRunNotFoundError(run_id)
    return run
