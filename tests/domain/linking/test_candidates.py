from __future__ import annotations

from uuid import uuid4

import pytest

from freightlink.domain.linking import (
    CandidateNotFoundError,
    CandidateStateError,
    LinkNotFoundError,
    LinkStatus,
    ShipmentNotFoundError,
    confirm_candidate,
    list_candidates,
    process_document,
    reclassify,
    reject_candidate,
)
from freightlink.domain.model import (
    CandidateStatus,
    LinkCandidate,
    LinkMethod,
    Shipment,
    TransitionReason,
    WorkflowState,
)
from tests.helpers.fakes import InMemoryStore, make_document

CONTAINER = "MSKU1234567"


@pytest.fixture
def ambiguous(store: InMemoryStore) -> tuple[LinkCandidate, Shipment, Shipment]:
    first = store.add_shipment(Shipment(booking_number="111111111", container_numbers=[CONTAINER]))
    second = store.add_shipment(
        Shipment(booking_number="222222222", container_numbers=[CONTAINER])
    )
    outcome = process_document(
        make_document("e3", "arrival_notice", ("container_number", CONTAINER)),
        unit_of_work_factory=store.unit_of_work,
    )
    return store.candidates[outcome.candidate_ids[0]], first, second


def test_list_candidates_filters_by_status(
    store: InMemoryStore,
    ambiguous: tuple[LinkCandidate, Shipment, Shipment],
) -> None:
    candidate, _, _ = ambiguous

    assert [item.id for item in list_candidates(unit_of_work_factory=store.unit_of_work)] == [
        candidate.id
    ]
    assert not list_candidates(
        unit_of_work_factory=store.unit_of_work,
        status=CandidateStatus.PENDING,
    )


def test_confirm_links_by_hand_and_advances(
    store: InMemoryStore,
    ambiguous: tuple[LinkCandidate, Shipment, Shipment],
) -> None:
    candidate, _, second = ambiguous

    outcome = confirm_candidate(
        candidate.id,
        shipment_id=second.id,
        unit_of_work_factory=store.unit_of_work,
    )

    assert outcome.status is LinkStatus.LINKED
    assert outcome.link_method is LinkMethod.MANUAL
    link = store.links[(second.id, "e3")]
    assert link.confidence == 1.0
    assert link.document_type == "arrival_notice"
    assert store.shipments[second.id].workflow_state is WorkflowState.ARRIVAL_NOTICE_RECEIVED
    confirmed = store.candidates[candidate.id]
    assert confirmed.status is CandidateStatus.CONFIRMED
    assert confirmed.shipment_id == second.id


def test_confirm_needs_a_shipment_when_several_match(
    store: InMemoryStore,
    ambiguous: tuple[LinkCandidate, Shipment, Shipment],
) -> None:
    candidate, _, _ = ambiguous

    with pytest.raises(CandidateStateError):
        confirm_candidate(candidate.id, unit_of_work_factory=store.unit_of_work)

    assert store.candidates[candidate.id].status is CandidateStatus.AMBIGUOUS


def test_confirm_unknown_candidate_or_shipment(
    store: InMemoryStore,
    ambiguous: tuple[LinkCandidate, Shipment, Shipment],
) -> None:
    candidate, _, _ = ambiguous

    with pytest.raises(CandidateNotFoundError):
        confirm_candidate(uuid4(), unit_of_work_factory=store.unit_of_work)
    with pytest.raises(ShipmentNotFoundError):
        confirm_candidate(
            candidate.id,
            shipment_id=uuid4(),
            unit_of_work_factory=store.unit_of_work,
        )


def test_reject_closes_candidate_for_good(
    store: InMemoryStore,
    ambiguous: tuple[LinkCandidate, Shipment, Shipment],
) -> None:
    candidate, first, _ = ambiguous

    rejected = reject_candidate(
        candidate.id,
        note="container reused",
        unit_of_work_factory=store.unit_of_work,
    )

    assert rejected.status is CandidateStatus.REJECTED
    assert store.candidates[candidate.id].note == "container reused"
    with pytest.raises(CandidateStateError):
        reject_candidate(candidate.id, unit_of_work_factory=store.unit_of_work)
    with pytest.raises(CandidateStateError):
        confirm_candidate(
            candidate.id,
            shipment_id=first.id,
            unit_of_work_factory=store.unit_of_work,
        )

    again = process_document(
        make_document("e3", "arrival_notice", ("container_number", CONTAINER)),
        unit_of_work_factory=store.unit_of_work,
    )
    assert again.status is LinkStatus.UNIDENTIFIED


def test_reclassify_rederives_state(store: InMemoryStore) -> None:
    created = process_document(
        make_document("e1", "booking_confirmation", ("booking_number", "263042012")),
        unit_of_work_factory=store.unit_of_work,
    )
    process_document(
        make_document("e2", "si_draft", ("booking_number", "263042012")),
        unit_of_work_factory=store.unit_of_work,
    )
    assert created.shipment_id is not None

    changes = reclassify("e2", "arrival_notice", unit_of_work_factory=store.unit_of_work)

    assert [(change.from_state, change.to_state) for _, change in changes] == [
        (WorkflowState.BOOKING_CONFIRMATION_RECEIVED, WorkflowState.ARRIVAL_NOTICE_RECEIVED)
    ]
    assert changes[0][1].reason is TransitionReason.REDERIVE
    assert store.links[(created.shipment_id, "e2")].document_type == "arrival_notice"

    kept = reclassify("e2", "si_draft", unit_of_work_factory=store.unit_of_work)
    assert kept == []
    shipment = store.shipments[created.shipment_id]
    assert shipment.workflow_state is WorkflowState.ARRIVAL_NOTICE_RECEIVED

    corrected = reclassify(
        "e2",
        "si_draft",
        allow_regression=True,
        unit_of_work_factory=store.unit_of_work,
    )
    assert corrected[0][1].reason is TransitionReason.CORRECTION
    shipment = store.shipments[created.shipment_id]
    assert shipment.workflow_state is WorkflowState.BOOKING_CONFIRMATION_RECEIVED


def test_reclassify_unlinked_email(store: InMemoryStore) -> None:
    with pytest.raises(LinkNotFoundError):
        reclassify("missing", "invoice", unit_of_work_factory=store.unit_of_work)
