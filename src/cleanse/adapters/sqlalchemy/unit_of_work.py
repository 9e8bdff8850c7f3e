"""Engine start-up and the SQLAlchemy unit of work."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal, Self

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from cleanse.adapters.sqlalchemy.mappings import start_mappers
from cleanse.adapters.sqlalchemy.migrations import upgrade_head
from cleanse.adapters.sqlalchemy.repositories import (
    SqlAlchemyAnalysisRunRepository,
    SqlAlchemyIssueHistoryRepository,
    SqlAlchemyIssueRepository,
)
from cleanse.config import get_database_config
from cleanse.domain.ports.unit_of_work import CleanseRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the adapter is used before ``startup()`` or started twice."""


class _Adapter:
    """Process-wide engine and the session factory bound to it."""

    __slots__ = ("_sessions", "engine")

    def __init__(self) -> None:
        self.engine: Engine | None = None
        self._sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self._sessions = (
            None if engine is None else sessionmaker(bind=engine, expire_on_commit=False)
        )

    def sessions(self) -> sessionmaker[Session]:
        if self._sessions is None:
            raise StartupError(
                "SQLAlchemy adapter not started. Call "
                "cleanse.adapters.sqlalchemy.startup() before opening a unit of work."
            )
        return self._sessions


_ADAPTER = _Adapter()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Map the domain model, migrate the schema and bind the session factory.

    Without ``engine`` one is created from ``database_uri`` or the configured
    database. Pass ``force=True`` to rebind an adapter that is already started.
    """

    if _ADAPTER.engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already started. Pass force=True to rebind it.")

    if engine is None:
        database = get_database_config()
        engine = create_engine(database_uri or database.uri, echo=database.echo)
    start_mappers()
    upgrade_head(engine=engine)
    _ADAPTER.bind(engine)
    log.info("SQLAlchemy adapter started on %s", engine.url.render_as_string(hide_password=True))
    return engine


def is_started() -> bool:
    return _ADAPTER.engine is not None


def shutdown() -> None:
    """Dispose the engine and forget it (used between tests)."""

    if _ADAPTER.engine is not None:
        _ADAPTER.engine.dispose()
    _ADAPTER.bind(None)


class SqlAlchemyUnitOfWork:
    """One session per ``with`` block.

    Nothing is written unless :meth:`commit` is called; leaving the block with
    an exception rolls the session back.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory or _ADAPTER.sessions()
        self._session: Session | None = None
        self._repositories: CleanseRepositories | None = None

    def __enter__(self) -> Self:
        if self._session is not None:
            raise StartupError("Unit of work is already active")
        session = self._session_factory()
        self._session = session
        self._repositories = CleanseRepositories(
            issues=SqlAlchemyIssueRepository(session),
            history=SqlAlchemyIssueHistoryRepository(session),
            runs=SqlAlchemyAnalysisRunRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self._session
        self._session = None
        self._repositories = None
        if session is not None:
            if exc_type is not None:
                session.rollback()
            session.close()
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not active")
        return self._session

    @property
    def repositories(self) -> CleanseRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not active")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from cleanse.domain.ports.unit_of_work import CleanseUnitOfWork

    _uow_check: CleanseUnitOfWork = SqlAlchemyUnitOfWork()
