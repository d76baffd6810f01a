"""Operator actions: reviewing link candidates and reclassifying linked documents."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from freightlink.domain.model import DocumentLink, LinkMethod
from freightlink.domain.workflow import DEFAULT_WORKFLOW, WorkflowDefinition, advance, rederive

from .contracts import LinkOutcome, LinkStatus
from .errors import (
    CandidateNotFoundError,
    CandidateStateError,
    LinkNotFoundError,
    ShipmentNotFoundError,
)
from .resolve import close_open_candidates

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from freightlink.domain.model import CandidateStatus, LinkCandidate, Shipment
    from freightlink.domain.ports import LinkingUnitOfWork
    from freightlink.domain.workflow import StateChange

log = getLogger(__name__)

UNCLASSIFIED_DOCUMENT_TYPE = "unclassified"
MANUAL_LINK_CONFIDENCE = 1.0


def list_candidates(
    *,
    unit_of_work_factory: Callable[[], LinkingUnitOfWork],
    status: CandidateStatus | None = None,
    limit: int | None = None,
) -> list[LinkCandidate]:
    with unit_of_work_factory() as uow:
        return uow.repositories.candidates.query(status=status, limit=limit)


def confirm_candidate(
    candidate_id: UUID,
    *,
    unit_of_work_factory: Callable[[], LinkingUnitOfWork],
    shipment_id: UUID | None = None,
    workflow: WorkflowDefinition = DEFAULT_WORKFLOW,
) -> LinkOutcome:
    """Link the candidate's email to a shipment by hand.

    ``shipment_id`` may be omitted only when the candidate lists exactly one
    shipment.
    """

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        candidate = repositories.candidates.get(candidate_id)
        if candidate is None:
            raise CandidateNotFoundError(f"No link candidate {candidate_id}")
        if not candidate.is_open:
            raise CandidateStateError(f"Candidate {candidate_id} is already {candidate.status}")

        target_id = shipment_id
        if target_id is None:
            if len(candidate.candidate_shipment_ids) != 1:
                raise CandidateStateError(
                    f"Candidate {candidate_id} lists {len(candidate.candidate_shipment_ids)} "
                    "shipments; pass the shipment id to confirm"
                )
            target_id = candidate.candidate_shipment_ids[0]

        shipment = repositories.shipments.get(target_id)
        if shipment is None:
            raise ShipmentNotFoundError(f"No shipment {target_id}")

        change: StateChange | None = None
        document_type = candidate.document_type or UNCLASSIFIED_DOCUMENT_TYPE
        if repositories.links.get(shipment.id, candidate.email_id) is None:
            repositories.links.add(
                DocumentLink(
                    shipment_id=shipment.id,
                    email_id=candidate.email_id,
                    document_type=document_type,
                    link_method=LinkMethod.MANUAL,
                    confidence=MANUAL_LINK_CONFIDENCE,
                    message_id=candidate.message_id,
                    matched_value=candidate.entity_value,
                )
            )
            change = advance(shipment, document_type, workflow=workflow)
            if change is not None:
                repositories.history.add(
                    change.to_transition(shipment, email_id=candidate.email_id)
                )

        candidate.confirm(shipment.id)
        close_open_candidates(candidate.email_id, shipment, repositories)
        shipment.touch()
        repositories.shipments.save(shipment)
        uow.commit()

    log.info(
        "Confirmed candidate %s: email %s -> %s",
        candidate_id,
        candidate.email_id,
        shipment.label,
    )
    return LinkOutcome(
        email_id=candidate.email_id,
        status=LinkStatus.LINKED,
        shipment_id=shipment.id,
        booking_number=shipment.booking_number,
        link_method=LinkMethod.MANUAL,
        confidence=MANUAL_LINK_CONFIDENCE,
        state_change=change,
    )


def reject_candidate(
    candidate_id: UUID,
    *,
    unit_of_work_factory: Callable[[], LinkingUnitOfWork],
    note: str | None = None,
) -> LinkCandidate:
    """Close a candidate for good; its identifier is ignored for that email from now on."""

    with unit_of_work_factory() as uow:
        candidate = uow.repositories.candidates.get(candidate_id)
        if candidate is None:
            raise CandidateNotFoundError(f"No link candidate {candidate_id}")
        if not candidate.is_open:
            raise CandidateStateError(f"Candidate {candidate_id} is already {candidate.status}")
        candidate.reject(note=note)
        uow.commit()
    log.info(
        "Rejected candidate %s (%s %s)",
        candidate_id,
        candidate.entity_type,
        candidate.entity_value,
    )
    return candidate


def reclassify(
    email_id: str,
    document_type: str,
    *,
    unit_of_work_factory: Callable[[], LinkingUnitOfWork],
    allow_regression: bool = False,
    workflow: WorkflowDefinition = DEFAULT_WORKFLOW,
) -> list[tuple[Shipment, StateChange]]:
    """Replace the document type of every link of ``email_id`` and re-derive state."""

    changes: list[tuple[Shipment, StateChange]] = []
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        links = repositories.links.list_for_email(email_id)
        if not links:
            raise LinkNotFoundError(f"Email {email_id} is not linked to any shipment")

        for link in links:
            link.document_type = document_type
        repositories.links.update(links)

        for link in links:
            shipment = repositories.shipments.get(link.shipment_id)
            if shipment is None:
                raise ShipmentNotFoundError(f"No shipment {link.shipment_id}")
            document_types = [
                item.document_type
                for item in repositories.links.list_for_shipment(shipment.id)
            ]
            result = rederive(
                shipment,
                document_types,
                allow_regression=allow_regression,
                workflow=workflow,
            )
            if result.change is not None:
                repositories.history.add(
                    result.change.to_transition(shipment, email_id=email_id)
                )
                changes.append((shipment, result.change))
            shipment.touch()
            repositories.shipments.save(shipment)
        uow.commit()

    log.info(
        "Reclassified email %s as %s (%s state changes)",
        email_id,
        document_type,
        len(changes),
    )
    return changes
