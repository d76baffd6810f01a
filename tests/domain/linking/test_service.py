from __future__ import annotations

import pytest

from freightlink.domain.linking import LinkStatus, process_document
from freightlink.domain.model import Shipment, TransitionReason, WorkflowState
from freightlink.domain.ports.errors import (
    ConcurrentUpdateError,
    DuplicateLinkError,
    TransientStorageError,
)
from tests.helpers.fakes import InMemoryStore, make_document

BOOKING = "263042012"


def test_lost_update_is_retried_on_fresh_state(store: InMemoryStore) -> None:
    shipment = store.add_shipment(Shipment(booking_number=BOOKING))
    bumped: list[bool] = []

    def concurrent_writer() -> None:
        if not bumped:
            bumped.append(True)
            store.shipments[shipment.id].version += 1

    store.before_commit = concurrent_writer

    outcome = process_document(
        make_document("e2", "bill_of_lading", ("booking_number", BOOKING)),
        unit_of_work_factory=store.unit_of_work,
        backoff_seconds=0,
    )

    assert outcome.status is LinkStatus.LINKED
    stored = store.shipments[shipment.id]
    assert stored.workflow_state is WorkflowState.BL_RECEIVED
    assert [row.reason for row in store.history_for(shipment.id)] == [TransitionReason.ADVANCE]
    assert len(store.links) == 1


def test_transient_failures_give_up_after_the_retry_budget(store: InMemoryStore) -> None:
    store.commit_failures = [ConcurrentUpdateError("busy") for _ in range(3)]

    with pytest.raises(ConcurrentUpdateError):
        process_document(
            make_document("e1", "booking_confirmation", ("booking_number", BOOKING)),
            unit_of_work_factory=store.unit_of_work,
            retries=2,
            backoff_seconds=0,
        )

    assert not store.shipments


def test_transient_failure_then_success(store: InMemoryStore) -> None:
    store.commit_failures = [TransientStorageError("connection reset")]

    outcome = process_document(
        make_document("e1", "booking_confirmation", ("booking_number", BOOKING)),
        unit_of_work_factory=store.unit_of_work,
        backoff_seconds=0,
    )

    assert outcome.status is LinkStatus.CREATED
    assert store.commits == 1


def test_booking_created_concurrently_is_resolved_again(store: InMemoryStore) -> None:
    winner = Shipment(booking_number=BOOKING)

    def other_worker_creates() -> None:
        if winner.id not in store.shipments:
            store.add_shipment(winner)

    store.before_commit = other_worker_creates

    outcome = process_document(
        make_document("e2", "booking_confirmation", ("booking_number", BOOKING)),
        unit_of_work_factory=store.unit_of_work,
        backoff_seconds=0,
    )

    assert outcome.status is LinkStatus.LINKED
    assert outcome.shipment_id == winner.id
    assert len(store.shipments) == 1


def test_link_written_concurrently_reports_already_linked(store: InMemoryStore) -> None:
    store.commit_failures = [DuplicateLinkError("exists")]

    outcome = process_document(
        make_document("e1", "booking_confirmation", ("booking_number", BOOKING)),
        unit_of_work_factory=store.unit_of_work,
        backoff_seconds=0,
    )

    assert outcome.status is LinkStatus.ALREADY_LINKED
    assert outcome.email_id == "e1"
