"""Errors raised by persistence and source adapters, in domain terms."""

from __future__ import annotations


class PersistenceError(RuntimeError):
    """Base class for storage failures surfaced to the domain."""


class TransientStorageError(PersistenceError):
    """A storage operation failed in a way that may succeed when retried."""


class ConcurrentUpdateError(TransientStorageError):
    """A shipment was modified by another writer since it was read."""


class DuplicateBookingError(PersistenceError):
    """An active shipment with the same booking number already exists."""


class DuplicateLinkError(PersistenceError):
    """The (shipment, email) link already exists."""


class StorageUnavailableError(PersistenceError):
    """Storage cannot be reached at all; the current run must stop.

    ``report`` carries whatever partial result was accumulated before the failure.
    """

    def __init__(self, message: str, *, report: object | None = None) -> None:
        super().__init__(message)
        self.report = report


class DocumentSourceError(RuntimeError):
    """The classification/entity collaborator could not deliver documents."""


RETRYABLE_ERRORS: tuple[type[Exception], ...] = (TransientStorageError,)
