"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from cleanse.adapters.locking import InProcessRunLock
from cleanse.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from cleanse.config import get_analysis_config
from cleanse.domain.analysis import AnalysisEngine, AnalysisRunTracker, run_analysis
from cleanse.domain.issues import IssueCommandService

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from threading import Event

    from cleanse.config import AnalysisConfig
    from cleanse.domain.analysis import IssueSubject
    from cleanse.domain.model import AnalysisRun, RuleDescriptor
    from cleanse.domain.ports import CleanseUnitOfWorkFactory, RunLock
    from cleanse.domain.rules import RulePipeline

log = getLogger(__name__)

_PROCESS_LOCK = InProcessRunLock()


@dataclass(frozen=True, slots=True)
class CleanseServices:
    """Application services sharing one unit-of-work factory."""

    issues: IssueCommandService
    runs: AnalysisRunTracker


def build_services(
    *, unit_of_work_factory: CleanseUnitOfWorkFactory | None = None
) -> CleanseServices:
    """Wire the services, starting the SQLAlchemy adapter when no factory is given."""

    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyUnitOfWork
    return CleanseServices(
        issues=IssueCommandService(unit_of_work_factory),
        runs=AnalysisRunTracker(unit_of_work_factory),
    )


def run_cleanse_analysis[TInput](  # noqa: PLR0913
    pipeline: RulePipeline[TInput],
    records: Iterable[TInput],
    subject_of: Callable[[TInput], IssueSubject],
    *,
    services: CleanseServices | None = None,
    lock: RunLock | None = None,
    descriptors: Mapping[str, RuleDescriptor] | None = None,
    total_records: int | None = None,
    cancel_event: Event | None = None,
    config: AnalysisConfig | None = None,
) -> AnalysisRun | None:
    """Run one analysis pass with the configured lock and progress settings.

    Returns ``None`` when another pass holds the lock.
    """

    effective_services = services or build_services()
    effective_config = config or get_analysis_config()
    engine = AnalysisEngine(
        pipeline=pipeline,
        issues=effective_services.issues,
        runs=effective_services.runs,
        subject_of=subject_of,
        descriptors=descriptors,
        progress_interval=effective_config.progress_interval,
        lock_extension=effective_config.lock_duration,
    )
    log.info(
        "Starting cleanse analysis: rules=%s, lock=%s, progress_interval=%s",
        ", ".join(pipeline.rule_codes) or "<none>",
        effective_config.lock_name,
        effective_config.progress_interval,
    )
    return run_analysis(
        engine,
        effective_services.runs,
        lock or _PROCESS_LOCK,
        records,
        total_records=total_records,
        cancel_event=cancel_event,
        lock_name=effective_config.lock_name,
        lock_duration=effective_config.lock_duration,
    )
