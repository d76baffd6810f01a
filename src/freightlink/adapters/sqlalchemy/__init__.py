"""SQLAlchemy adapter package for Freightlink."""

from __future__ import annotations

from .errors import translate_error
from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCheckpointRepository,
    SqlAlchemyDocumentLinkRepository,
    SqlAlchemyLinkCandidateRepository,
    SqlAlchemyShipmentRepository,
    SqlAlchemyWorkflowHistoryRepository,
)
from .sources import SqlAlchemyDocumentSource
from .unit_of_work import (
    SqlAlchemyLinkingUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    session_factory,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyCheckpointRepository",
    "SqlAlchemyDocumentLinkRepository",
    "SqlAlchemyDocumentSource",
    "SqlAlchemyLinkCandidateRepository",
    "SqlAlchemyLinkingUnitOfWork",
    "SqlAlchemyShipmentRepository",
    "SqlAlchemyWorkflowHistoryRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "session_factory",
    "shutdown",
    "start_mappers",
    "startup",
    "translate_error",
]
