"""SQLAlchemy-backed unit of work for shipment linking."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from freightlink.adapters.sqlalchemy.errors import translate_error
from freightlink.adapters.sqlalchemy.mappings import start_mappers
from freightlink.adapters.sqlalchemy.migrations import upgrade_head
from freightlink.adapters.sqlalchemy.repositories import (
    SqlAlchemyCheckpointRepository,
    SqlAlchemyDocumentLinkRepository,
    SqlAlchemyLinkCandidateRepository,
    SqlAlchemyShipmentRepository,
    SqlAlchemyWorkflowHistoryRepository,
)
from freightlink.config import DatabaseConfig, get_database_config
from freightlink.domain.ports.unit_of_work import LinkingRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call freightlink.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine
    if resolved_engine is None:
        config = DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
        resolved_engine = create_engine(
            config.uri,
            future=True,
            pool_pre_ping=True,
            echo=config.echo,
        )
    log.info("Using database %s", resolved_engine.url.render_as_string(hide_password=True))
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def session_factory() -> sessionmaker[Session]:
    """Session factory bound to the managed engine, for read-only adapters."""

    return _STATE.session_factory


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    SQLAlchemy errors never leave the context untranslated; callers only see
    ``freightlink.domain.ports.errors`` exceptions.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self.rollback()
        except SQLAlchemyError as rollback_error:
            log.warning("Rollback failed: %s", rollback_error)
            raise translate_error(rollback_error) from rollback_error
        finally:
            self.session.close()
            self.session = None
        if isinstance(exc_value, SQLAlchemyError):
            raise translate_error(exc_value) from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise translate_error(exc) from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyLinkingUnitOfWork(BaseSqlAlchemyUnitOfWork[LinkingRepositories]):
    """Unit of work managing SQLAlchemy sessions for shipment linking."""

    def _build_repositories(self, session: Session) -> LinkingRepositories:
        return LinkingRepositories(
            shipments=SqlAlchemyShipmentRepository(session),
            links=SqlAlchemyDocumentLinkRepository(session),
            candidates=SqlAlchemyLinkCandidateRepository(session),
            history=SqlAlchemyWorkflowHistoryRepository(session),
            checkpoints=SqlAlchemyCheckpointRepository(session),
        )


if TYPE_CHECKING:
    from freightlink.domain.ports.unit_of_work import LinkingUnitOfWork

    _uow_check: LinkingUnitOfWork = SqlAlchemyLinkingUnitOfWork()
