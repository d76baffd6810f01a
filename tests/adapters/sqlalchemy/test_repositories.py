from __future__ import annotations

from typing import TYPE_CHECKING

from freightlink.adapters.sqlalchemy import (
    SqlAlchemyCheckpointRepository,
    SqlAlchemyDocumentLinkRepository,
    SqlAlchemyLinkCandidateRepository,
    SqlAlchemyShipmentRepository,
    SqlAlchemyWorkflowHistoryRepository,
)
from freightlink.domain.model import (
    CandidateStatus,
    DocumentLink,
    IdentifierType,
    LinkCandidate,
    LinkMethod,
    Shipment,
    TransitionReason,
    WorkflowState,
    WorkflowTransition,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _link(shipment: Shipment, email_id: str, document_type: str, **kwargs: str) -> DocumentLink:
    return DocumentLink(
        shipment_id=shipment.id,
        email_id=email_id,
        document_type=document_type,
        link_method=LinkMethod.BOOKING_NUMBER,
        confidence=0.855,
        **kwargs,  # type: ignore[arg-type]
    )


def test_shipments_are_found_by_each_identifier(sqlite_session: Session) -> None:
    repository = SqlAlchemyShipmentRepository(sqlite_session)
    shipment = Shipment(
        booking_number="263042012",
        bl_number="123456789",
        container_numbers=["MSKU1234567", "TGHU7654321"],
    )
    repository.add(shipment)
    repository.add(Shipment(booking_number="999888777"))
    sqlite_session.commit()

    by_booking = repository.find_by_identifier(IdentifierType.BOOKING_NUMBER, "263042012")
    by_bl = repository.find_by_identifier(IdentifierType.BL_NUMBER, "123456789")
    by_container = repository.find_by_identifier(IdentifierType.CONTAINER_NUMBER, "TGHU7654321")

    assert [item.id for item in by_booking] == [shipment.id]
    assert [item.id for item in by_bl] == [shipment.id]
    assert [item.id for item in by_container] == [shipment.id]
    assert repository.find_by_identifier(IdentifierType.CONTAINER_NUMBER, "XXXU0000000") == []


def test_container_lookup_follows_saved_changes(sqlite_session: Session) -> None:
    repository = SqlAlchemyShipmentRepository(sqlite_session)
    shipment = Shipment(booking_number="263042012", container_numbers=["MSKU1234567"])
    repository.add(shipment)
    sqlite_session.commit()

    shipment.container_numbers = ["TGHU7654321"]
    repository.save(shipment)
    sqlite_session.commit()

    assert repository.find_by_identifier(IdentifierType.CONTAINER_NUMBER, "MSKU1234567") == []
    found = repository.find_by_identifier(IdentifierType.CONTAINER_NUMBER, "TGHU7654321")
    assert [item.id for item in found] == [shipment.id]


def test_list_ids_pages_in_id_order(sqlite_session: Session) -> None:
    repository = SqlAlchemyShipmentRepository(sqlite_session)
    for index in range(3):
        repository.add(Shipment(booking_number=f"10000000{index}"))
    sqlite_session.commit()

    first_page = repository.list_ids(limit=2)
    second_page = repository.list_ids(after=first_page[-1], limit=2)

    assert len(first_page) == 2  # noqa: PLR2004
    assert len(second_page) == 1
    assert not set(first_page) & set(second_page)
    assert repository.list_ids(after=second_page[-1], limit=2) == []


def test_document_links(sqlite_session: Session) -> None:
    shipments = SqlAlchemyShipmentRepository(sqlite_session)
    links = SqlAlchemyDocumentLinkRepository(sqlite_session)
    shipment = Shipment(booking_number="263042012")
    shipments.add(shipment)
    links.add(_link(shipment, "e1", "booking_confirmation", message_id="<m1>"))
    links.add(_link(shipment, "e2", "bill_of_lading"))
    sqlite_session.commit()

    assert links.get(shipment.id, "e1") is not None
    assert [link.email_id for link in links.find_by_message_id("<m1>")] == ["e1"]
    assert links.linked_email_ids(["e1", "e3"]) == {"e1"}
    assert links.linked_email_ids([]) == set()
    assert sorted(links.document_types_by_shipment([shipment.id])[shipment.id]) == [
        "bill_of_lading",
        "booking_confirmation",
    ]

    stored = links.list_for_email("e2")
    stored[0].document_type = "arrival_notice"
    links.update(stored)
    sqlite_session.commit()

    assert links.list_for_email("e2")[0].document_type == "arrival_notice"
    assert {link.email_id for link in links.list_for_shipment(shipment.id)} == {"e1", "e2"}


def test_link_candidates(sqlite_session: Session) -> None:
    repository = SqlAlchemyLinkCandidateRepository(sqlite_session)
    pending = LinkCandidate(
        email_id="e1",
        entity_type=IdentifierType.BOOKING_NUMBER,
        entity_value="263042012",
        confidence=0.9,
    )
    rejected = LinkCandidate(
        email_id="e2",
        entity_type=IdentifierType.CONTAINER_NUMBER,
        entity_value="MSKU1234567",
        confidence=0.8,
        status=CandidateStatus.REJECTED,
    )
    repository.add(pending)
    repository.add(rejected)
    sqlite_session.commit()

    found = repository.find("e1", IdentifierType.BOOKING_NUMBER, "263042012")
    assert found is not None
    assert found.id == pending.id
    assert repository.find("e1", IdentifierType.BL_NUMBER, "263042012") is None
    assert [item.id for item in repository.query(status=CandidateStatus.PENDING)] == [pending.id]
    assert len(repository.query(limit=1)) == 1
    assert [item.id for item in repository.list_for_email("e2")] == [rejected.id]


def test_workflow_history(sqlite_session: Session) -> None:
    shipments = SqlAlchemyShipmentRepository(sqlite_session)
    history = SqlAlchemyWorkflowHistoryRepository(sqlite_session)
    shipment = Shipment(booking_number="263042012")
    shipments.add(shipment)
    history.add(
        WorkflowTransition(
            shipment_id=shipment.id,
            from_state=None,
            to_state=WorkflowState.BOOKING_CONFIRMATION_RECEIVED,
            reason=TransitionReason.CREATE,
            email_id="e1",
        )
    )
    sqlite_session.commit()

    rows = history.list_for_shipment(shipment.id)
    assert len(rows) == 1
    assert rows[0].from_state is None
    assert rows[0].reason is TransitionReason.CREATE


def test_checkpoints_are_upserted_and_cleared(sqlite_session: Session) -> None:
    repository = SqlAlchemyCheckpointRepository(sqlite_session)

    repository.save("backfill.linking", "e1")
    sqlite_session.commit()
    repository.save("backfill.linking", "e7")
    sqlite_session.commit()

    checkpoint = repository.get("backfill.linking")
    assert checkpoint is not None
    assert checkpoint.position == "e7"

    repository.clear("backfill.linking")
    sqlite_session.commit()
    sqlite_session.expire_all()
    assert repository.get("backfill.linking") is None
