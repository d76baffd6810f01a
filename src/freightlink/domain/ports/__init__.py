"""Domain port definitions for adapters."""

from __future__ import annotations

from .errors import (
    ConcurrentUpdateError,
    DocumentSourceError,
    DuplicateBookingError,
    DuplicateLinkError,
    PersistenceError,
    StorageUnavailableError,
    TransientStorageError,
)
from .persistence import (
    CheckpointRepository,
    DocumentLinkRepository,
    LinkCandidateRepository,
    Repository,
    ShipmentRepository,
    WorkflowHistoryRepository,
)
from .sources import DocumentSource
from .unit_of_work import (
    LinkingRepositories,
    LinkingUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CheckpointRepository",
    "ConcurrentUpdateError",
    "DocumentLinkRepository",
    "DocumentSource",
    "DocumentSourceError",
    "DuplicateBookingError",
    "DuplicateLinkError",
    "LinkCandidateRepository",
    "LinkingRepositories",
    "LinkingUnitOfWork",
    "PersistenceError",
    "Repository",
    "RepositoryCollection",
    "ShipmentRepository",
    "StorageUnavailableError",
    "TransientStorageError",
    "UnitOfWork",
    "WorkflowHistoryRepository",
]
