from __future__ import annotations

from typing import TYPE_CHECKING, cast

import httpx
import pytest

from freightlink.domain.ports.errors import DocumentSourceError

if TYPE_CHECKING:
    from collections.abc import Callable

    from freightlink.adapters.postgrest import PostgrestDocumentSource

    SourceFactory = Callable[[Callable[[httpx.Request], httpx.Response]], PostgrestDocumentSource]

CLASSIFICATIONS = [
    {
        "email_id": "e1",
        "message_id": "<m1>",
        "document_type": "bill_of_lading",
        "classified_at": "2026-03-02T09:30:00+00:00",
    },
    {
        "email_id": "e1",
        "message_id": "<m1>",
        "document_type": "invoice",
        "classified_at": "2026-03-01T09:30:00+00:00",
    },
    {
        "email_id": "e2",
        "message_id": "",
        "document_type": "booking_confirmation",
        "classified_at": "2026-03-02T10:00:00+00:00",
        "classifier_version": 7,
    },
]

ENTITIES = [
    {"email_id": "e1", "entity_type": "bl_number", "entity_value": "123456789", "confidence": 0.8},
    {
        "email_id": "e2",
        "entity_type": "booking_number",
        "entity_value": 263042012,
        "confidence": "0.95",
    },
]


class Recorder:
    def __init__(
        self,
        classifications: object = CLASSIFICATIONS,
        entities: object = ENTITIES,
        *,
        max_rows: int | None = None,
        counts: bool = True,
    ) -> None:
        self.classifications = classifications
        self.entities = entities
        self.max_rows = max_rows
        self.counts = counts
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/email_classifications"):
            return httpx.Response(200, json=self.classifications)
        if request.url.path.endswith("/entity_extractions"):
            return self._entity_page(request)
        return httpx.Response(404)

    def _entity_page(self, request: httpx.Request) -> httpx.Response:
        if not isinstance(self.entities, list):
            return httpx.Response(200, json=self.entities)
        rows = cast(list[object], self.entities)
        offset = int(request.url.params.get("offset", "0"))
        limit = int(request.url.params.get("limit", str(len(rows))))
        if self.max_rows is not None:
            limit = min(limit, self.max_rows)
        page = rows[offset : offset + limit]
        total = str(len(rows)) if self.counts else "*"
        content_range = f"{offset}-{offset + len(page) - 1}/{total}" if page else f"*/{total}"
        return httpx.Response(200, json=page, headers={"Content-Range": content_range})


def test_fetch_batch_builds_documents(make_source: SourceFactory) -> None:
    recorder = Recorder()

    documents = make_source(recorder).fetch_batch(after=None, limit=50)

    assert [document.email_id for document in documents] == ["e1", "e2"]
    assert documents[0].document_type == "bill_of_lading"
    assert documents[0].message_id == "<m1>"
    assert documents[1].message_id is None
    assert [(item.entity_value, item.confidence) for item in documents[1].entities] == [
        ("263042012", 0.95)
    ]


def test_fetch_batch_query_parameters(make_source: SourceFactory) -> None:
    recorder = Recorder()

    make_source(recorder).fetch_batch(after="e0", limit=2)

    classification_request, entity_request = recorder.requests
    assert classification_request.url.params["email_id"] == "gt.e0"
    assert classification_request.url.params["limit"] == "2"
    assert classification_request.url.params["order"] == "email_id.asc,classified_at.desc"
    assert entity_request.url.params["email_id"] == 'in.("e1","e2")'


def test_empty_batch_skips_entity_request(make_source: SourceFactory) -> None:
    recorder = Recorder(classifications=[])

    assert make_source(recorder).fetch_batch(after="e9", limit=10) == []
    assert len(recorder.requests) == 1


def test_get_single_email(make_source: SourceFactory) -> None:
    recorder = Recorder(classifications=CLASSIFICATIONS[2:], entities=ENTITIES[1:])

    document = make_source(recorder).get("e2")

    assert document is not None
    assert document.document_type == "booking_confirmation"
    assert recorder.requests[0].url.params["email_id"] == 'in.("e2")'


def test_get_unknown_email(make_source: SourceFactory) -> None:
    assert make_source(Recorder(classifications=[])).get("missing") is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="unavailable"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"message": "not a list"}),
        httpx.Response(200, json=[{"email_id": "e1"}]),
    ],
)
def test_collaborator_failures_raise_source_errors(
    make_source: SourceFactory,
    response: httpx.Response,
) -> None:
    source = make_source(lambda _request: response)

    with pytest.raises(DocumentSourceError):
        source.fetch_batch(after=None, limit=10)


def test_network_errors_raise_source_errors(make_source: SourceFactory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DocumentSourceError):
        make_source(handler).fetch_batch(after=None, limit=10)


MANY_ENTITIES = [
    {"email_id": "e1", "entity_type": "bl_number", "entity_value": "123456789"},
    {"email_id": "e1", "entity_type": "container_number", "entity_value": "MSCU1234565"},
    {"email_id": "e2", "entity_type": "booking_number", "entity_value": "263042012"},
]


@pytest.mark.parametrize("counts", [True, False], ids=["exact-count", "no-count"])
def test_entities_beyond_the_server_row_cap_are_fetched(
    make_source: SourceFactory,
    counts: bool,
) -> None:
    recorder = Recorder(entities=MANY_ENTITIES, max_rows=2, counts=counts)

    documents = make_source(recorder).fetch_batch(after=None, limit=50)

    assert [
        [entity.entity_value for entity in document.entities] for document in documents
    ] == [["123456789", "MSCU1234565"], ["263042012"]]
    offsets = [
        request.url.params["offset"]
        for request in recorder.requests
        if request.url.path.endswith("/entity_extractions")
    ]
    assert offsets == (["0", "2"] if counts else ["0", "2", "3"])


def test_entity_requests_ask_for_an_exact_count(make_source: SourceFactory) -> None:
    recorder = Recorder()

    make_source(recorder).fetch_batch(after=None, limit=50)

    entity_request = recorder.requests[-1]
    assert entity_request.headers["Prefer"] == "count=exact"
    assert entity_request.url.params["order"] == "email_id.asc,entity_type.asc,entity_value.asc"
