"""Translate SQLAlchemy failures into domain persistence errors."""

from __future__ import annotations

from logging import getLogger

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm.exc import StaleDataError

from freightlink.adapters.sqlalchemy.mappings import ACTIVE_BOOKING_INDEX, LINK_KEY_CONSTRAINT
from freightlink.domain.ports.errors import (
    ConcurrentUpdateError,
    DuplicateBookingError,
    DuplicateLinkError,
    PersistenceError,
    TransientStorageError,
)

log = getLogger(__name__)

# PostgreSQL names the violated constraint, SQLite lists the key columns.
LINK_KEY_MARKERS = (
    f'"{LINK_KEY_CONSTRAINT}"',
    "shipment_document.shipment_id, shipment_document.email_id",
)


def translate_error(exc: SQLAlchemyError) -> PersistenceError:
    """Map a SQLAlchemy exception onto the error hierarchy the domain understands."""

    if isinstance(exc, StaleDataError):
        return ConcurrentUpdateError(str(exc))

    if isinstance(exc, IntegrityError):
        message = str(exc.orig)
        if any(marker in message for marker in LINK_KEY_MARKERS):
            return DuplicateLinkError(message)
        if ACTIVE_BOOKING_INDEX in message or "shipment.booking_number" in message:
            return DuplicateBookingError(message)
        return PersistenceError(message)

    if isinstance(exc, (OperationalError, InterfaceError)):
        log.warning(f"Transient database failure: {exc}")
        return TransientStorageError(str(exc))

    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return TransientStorageError(str(exc))

    return PersistenceError(str(exc))
