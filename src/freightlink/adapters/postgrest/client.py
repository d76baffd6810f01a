"""Document source reading classified emails from a PostgREST endpoint."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx
from pydantic import ValidationError

from freightlink.adapters.http_resilience import RequestOptions, ResilientClient
from freightlink.domain.model import ClassifiedDocument, ExtractedEntity
from freightlink.domain.ports.errors import DocumentSourceError

from .schema import ClassificationRow, EntityRow, PostgrestRow

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from freightlink.config.http_resilience import ResilienceConfig
    from freightlink.config.postgrest import PostgrestConfig

log = getLogger(__name__)

# Ask PostgREST to report the total row count in Content-Range.
COUNT_HEADERS = {"Prefer": "count=exact"}


class PostgrestDocumentSource:
    """Read-only document source backed by the classification service's REST API.

    Classification rows are requested newest first within each email, so the first
    row seen for an email is its current classification.
    """

    def __init__(
        self,
        *,
        config: PostgrestConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_batch(self, *, after: str | None, limit: int) -> list[ClassifiedDocument]:
        return asyncio.run(self._fetch_batch_async(after=after, limit=limit))

    def get(self, email_id: str) -> ClassifiedDocument | None:
        documents = asyncio.run(self._fetch_emails_async([email_id]))
        return documents[0] if documents else None

    async def _fetch_batch_async(
        self,
        *,
        after: str | None,
        limit: int,
    ) -> list[ClassifiedDocument]:
        params: dict[str, str] = {
            "select": "email_id,message_id,document_type,classified_at",
            "order": "email_id.asc,classified_at.desc",
            "limit": str(limit),
        }
        if after is not None:
            params["email_id"] = f"gt.{after}"

        async with self._client_factory(self._resilience) as client:
            rows = await self._get_rows(client, self._config.classification_table, params)
            classifications = _latest_per_email(
                _parse_rows(ClassificationRow, rows, self._config.classification_table)
            )
            entities = await self._fetch_entities(client, list(classifications))
        documents = _assemble(classifications, entities)
        log.debug(f"Fetched {len(documents)} classified emails after {after!r}")
        return documents

    async def _fetch_emails_async(self, email_ids: Sequence[str]) -> list[ClassifiedDocument]:
        params = {
            "select": "email_id,message_id,document_type,classified_at",
            "order": "email_id.asc,classified_at.desc",
            "email_id": _in_filter(email_ids),
        }
        async with self._client_factory(self._resilience) as client:
            rows = await self._get_rows(client, self._config.classification_table, params)
            classifications = _latest_per_email(
                _parse_rows(ClassificationRow, rows, self._config.classification_table)
            )
            entities = await self._fetch_entities(client, list(classifications))
        return _assemble(classifications, entities)

    async def _fetch_entities(
        self,
        client: ResilientClient,
        email_ids: Sequence[str],
    ) -> dict[str, list[EntityRow]]:
        """Page through the entity rows of ``email_ids``.

        PostgREST silently caps responses at ``db-max-rows``, so pages advance by the
        rows actually received until ``Content-Range`` reports the total (or, without
        a count, until a page comes back empty).
        """

        grouped: defaultdict[str, list[EntityRow]] = defaultdict(list)
        if not email_ids:
            return grouped
        table = self._config.entity_table
        offset = 0
        while True:
            params = {
                "select": "email_id,entity_type,entity_value,confidence",
                "email_id": _in_filter(email_ids),
                "order": "email_id.asc,entity_type.asc,entity_value.asc",
                "offset": str(offset),
                "limit": str(self._config.entity_page_size),
            }
            rows, total = await self._get_page(client, table, params, headers=COUNT_HEADERS)
            for entity in _parse_rows(EntityRow, rows, table):
                grouped[entity.email_id].append(entity)
            offset += len(rows)
            if not rows or (total is not None and offset >= total):
                return grouped
            log.debug(f"Fetched {offset} of {total or 'unknown'} {table} rows; paging on")

    async def _get_rows(
        self,
        client: ResilientClient,
        table: str,
        params: dict[str, str],
    ) -> list[dict[str, Any]]:
        rows, _ = await self._get_page(client, table, params)
        return rows

    async def _get_page(
        self,
        client: ResilientClient,
        table: str,
        params: dict[str, str],
        *,
        headers: dict[str, str] | None = None,
    ) -> tuple[list[dict[str, Any]], int | None]:
        options: RequestOptions = {"params": params}
        if headers:
            options["headers"] = headers
        try:
            response = await client.get(table, **options)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise DocumentSourceError(f"PostgREST request for {table} failed: {exc}") from exc
        except ValueError as exc:
            raise DocumentSourceError(f"PostgREST returned invalid JSON for {table}") from exc

        if not isinstance(payload, list):
            raise DocumentSourceError(f"Unexpected PostgREST payload for {table}")
        rows = cast(list[object], payload)
        return (
            [cast(dict[str, Any], row) for row in rows if isinstance(row, dict)],
            _content_range_total(response.headers.get("Content-Range")),
        )


def _parse_rows[TRow: PostgrestRow](
    model: type[TRow],
    rows: Sequence[dict[str, Any]],
    table: str,
) -> list[TRow]:
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as exc:
        raise DocumentSourceError(f"Malformed {table} row: {exc}") from exc


def _content_range_total(header: str | None) -> int | None:
    # "0-999/4213", "*/0" or "0-999/*" when the server does not count
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


def _in_filter(values: Sequence[str]) -> str:
    quoted = ",".join('"' + value.replace('"', '\\"') + '"' for value in values)
    return f"in.({quoted})"


def _latest_per_email(rows: Sequence[ClassificationRow]) -> dict[str, ClassificationRow]:
    latest: dict[str, ClassificationRow] = {}
    for row in rows:
        current = latest.get(row.email_id)
        if current is None or _newer(row, current):
            latest[row.email_id] = row
    return latest


def _newer(row: ClassificationRow, current: ClassificationRow) -> bool:
    if row.classified_at is None or current.classified_at is None:
        return False
    return row.classified_at > current.classified_at


def _assemble(
    classifications: dict[str, ClassificationRow],
    entities: dict[str, list[EntityRow]],
) -> list[ClassifiedDocument]:
    return [
        ClassifiedDocument(
            email_id=email_id,
            document_type=row.document_type,
            message_id=row.message_id,
            entities=tuple(
                ExtractedEntity(
                    entity_type=entity.entity_type,
                    entity_value=entity.entity_value,
                    confidence=entity.confidence,
                )
                for entity in entities.get(email_id, ())
            ),
        )
        for email_id, row in sorted(classifications.items())
    ]


if TYPE_CHECKING:
    from freightlink.domain.ports import DocumentSource

    _source_check: DocumentSource = PostgrestDocumentSource(
        config=cast("PostgrestConfig", None),
    )
