from __future__ import annotations

import pytest
from sqlalchemy.exc import (
    IntegrityError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)
from sqlalchemy.orm.exc import StaleDataError

from freightlink.adapters.sqlalchemy import translate_error
from freightlink.domain.ports.errors import (
    ConcurrentUpdateError,
    DuplicateBookingError,
    DuplicateLinkError,
    PersistenceError,
    TransientStorageError,
)


def _integrity(message: str) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, Exception(message))


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (StaleDataError("0 rows matched"), ConcurrentUpdateError),
        (
            _integrity(
                "UNIQUE constraint failed: "
                "shipment_document.shipment_id, shipment_document.email_id"
            ),
            DuplicateLinkError,
        ),
        (
            _integrity('duplicate key value violates unique constraint "pk_shipment_document"'),
            DuplicateLinkError,
        ),
        (
            _integrity(
                'insert or update on table "shipment_document" violates foreign key '
                'constraint "fk_shipment_document_shipment_id_shipment"'
            ),
            PersistenceError,
        ),
        (_integrity("FOREIGN KEY constraint failed"), PersistenceError),
        (
            _integrity("NOT NULL constraint failed: shipment_document.link_method"),
            PersistenceError,
        ),
        (_integrity("UNIQUE constraint failed: shipment.booking_number"), DuplicateBookingError),
        (
            _integrity(
                'duplicate key violates unique constraint "ix_shipment_active_booking_number"'
            ),
            DuplicateBookingError,
        ),
        (_integrity("NOT NULL constraint failed: link_candidate.email_id"), PersistenceError),
        (OperationalError("SELECT 1", {}, Exception("connection refused")), TransientStorageError),
        (ProgrammingError("SELECT", {}, Exception("no such table")), PersistenceError),
    ],
)
def test_translate_error(error: SQLAlchemyError, expected: type[PersistenceError]) -> None:
    translated = translate_error(error)

    assert type(translated) is expected
