"""Read classified documents from the collaborator tables in the shared database."""

from __future__ import annotations

from collections import defaultdict
from logging import getLogger
from typing import TYPE_CHECKING, cast

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from freightlink.adapters.sqlalchemy.mappings import (
    email_classification_table,
    entity_extraction_table,
)
from freightlink.domain.model import ClassifiedDocument, ExtractedEntity
from freightlink.domain.ports.errors import DocumentSourceError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sqlalchemy.orm import Session

log = getLogger(__name__)


class SqlAlchemyDocumentSource:
    """Document source over ``email_classification`` and ``entity_extraction``.

    An email may have been classified several times; only the most recent
    classification is returned.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def fetch_batch(self, *, after: str | None, limit: int) -> list[ClassifiedDocument]:
        stmt = (
            select(email_classification_table.c.email_id)
            .distinct()
            .order_by(email_classification_table.c.email_id)
            .limit(limit)
        )
        if after is not None:
            stmt = stmt.where(email_classification_table.c.email_id > after)
        try:
            with self._session_factory() as session:
                email_ids = list(session.execute(stmt).scalars().all())
                documents = self._load(session, email_ids)
        except SQLAlchemyError as exc:
            raise DocumentSourceError(f"Failed to read classified emails: {exc}") from exc
        log.debug(f"Fetched {len(documents)} classified emails after {after!r}")
        return documents

    def get(self, email_id: str) -> ClassifiedDocument | None:
        try:
            with self._session_factory() as session:
                documents = self._load(session, [email_id])
        except SQLAlchemyError as exc:
            raise DocumentSourceError(f"Failed to read email {email_id}: {exc}") from exc
        return documents[0] if documents else None

    def _load(self, session: Session, email_ids: Sequence[str]) -> list[ClassifiedDocument]:
        if not email_ids:
            return []

        classification_stmt = (
            select(
                email_classification_table.c.email_id,
                email_classification_table.c.message_id,
                email_classification_table.c.document_type,
            )
            .where(email_classification_table.c.email_id.in_(email_ids))
            .order_by(
                email_classification_table.c.email_id,
                email_classification_table.c.classified_at.desc(),
                email_classification_table.c.id.desc(),
            )
        )
        latest: dict[str, tuple[str | None, str]] = {}
        for email_id, message_id, document_type in session.execute(classification_stmt):
            latest.setdefault(email_id, (message_id, document_type))

        entity_stmt = (
            select(
                entity_extraction_table.c.email_id,
                entity_extraction_table.c.entity_type,
                entity_extraction_table.c.entity_value,
                entity_extraction_table.c.confidence,
            )
            .where(entity_extraction_table.c.email_id.in_(email_ids))
            .order_by(entity_extraction_table.c.id)
        )
        entities: defaultdict[str, list[ExtractedEntity]] = defaultdict(list)
        for email_id, entity_type, entity_value, confidence in session.execute(entity_stmt):
            entities[email_id].append(
                ExtractedEntity(
                    entity_type=entity_type,
                    entity_value=entity_value,
                    confidence=confidence,
                )
            )

        documents: list[ClassifiedDocument] = []
        for email_id in sorted(latest):
            message_id, document_type = latest[email_id]
            documents.append(
                ClassifiedDocument(
                    email_id=email_id,
                    document_type=document_type,
                    entities=tuple(entities.get(email_id, ())),
                    message_id=message_id,
                )
            )
        return documents


if TYPE_CHECKING:
    from freightlink.domain.ports import DocumentSource

    _source_check: DocumentSource = SqlAlchemyDocumentSource(cast("Callable[[], Session]", None))
