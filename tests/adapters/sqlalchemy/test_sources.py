from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import insert
from sqlalchemy.orm import sessionmaker

from freightlink.adapters.sqlalchemy import SqlAlchemyDocumentSource
from freightlink.adapters.sqlalchemy.mappings import (
    email_classification_table,
    entity_extraction_table,
)
from freightlink.domain.ports.errors import DocumentSourceError

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


@pytest.fixture
def source(sqlite_engine: Engine) -> SqlAlchemyDocumentSource:
    with sqlite_engine.begin() as connection:
        connection.execute(
            insert(email_classification_table),
            [
                {
                    "email_id": "e1",
                    "message_id": "<m1>",
                    "document_type": "invoice",
                    "classified_at": NOW - timedelta(days=1),
                },
                {
                    "email_id": "e1",
                    "message_id": "<m1>",
                    "document_type": "bill_of_lading",
                    "classified_at": NOW,
                },
                {
                    "email_id": "e2",
                    "message_id": None,
                    "document_type": "booking_confirmation",
                    "classified_at": NOW,
                },
            ],
        )
        connection.execute(
            insert(entity_extraction_table),
            [
                {
                    "email_id": "e1",
                    "entity_type": "bl_number",
                    "entity_value": "123456789",
                    "confidence": 0.8,
                },
                {
                    "email_id": "e1",
                    "entity_type": "booking_number",
                    "entity_value": "263042012",
                    "confidence": None,
                },
            ],
        )
    return SqlAlchemyDocumentSource(sessionmaker(bind=sqlite_engine))


def test_fetch_batch_returns_latest_classification(source: SqlAlchemyDocumentSource) -> None:
    documents = source.fetch_batch(after=None, limit=10)

    assert [document.email_id for document in documents] == ["e1", "e2"]
    first = documents[0]
    assert first.document_type == "bill_of_lading"
    assert first.message_id == "<m1>"
    assert [(item.entity_type, item.confidence) for item in first.entities] == [
        ("bl_number", 0.8),
        ("booking_number", None),
    ]
    assert documents[1].entities == ()


def test_fetch_batch_pages_by_email_id(source: SqlAlchemyDocumentSource) -> None:
    assert [document.email_id for document in source.fetch_batch(after=None, limit=1)] == ["e1"]
    assert [document.email_id for document in source.fetch_batch(after="e1", limit=1)] == ["e2"]
    assert source.fetch_batch(after="e2", limit=1) == []


def test_get_single_document(source: SqlAlchemyDocumentSource) -> None:
    document = source.get("e2")

    assert document is not None
    assert document.document_type == "booking_confirmation"
    assert source.get("missing") is None


def test_database_errors_become_source_errors(sqlite_engine: Engine) -> None:
    with sqlite_engine.begin() as connection:
        connection.exec_driver_sql("DROP TABLE entity_extraction")
        connection.execute(
            insert(email_classification_table),
            [{"email_id": "e1", "document_type": "invoice", "classified_at": NOW}],
        )
    source = SqlAlchemyDocumentSource(sessionmaker(bind=sqlite_engine))

    with pytest.raises(DocumentSourceError):
        source.fetch_batch(after=None, limit=10)
