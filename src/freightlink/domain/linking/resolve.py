"""Match a classified document to a shipment, create one, or queue a candidate."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from freightlink.domain.model import (
    CandidateStatus,
    DocumentLink,
    IdentifierType,
    LinkCandidate,
    LinkMethod,
    Shipment,
    TransitionReason,
    WorkflowTransition,
)
from freightlink.domain.workflow import (
    DEFAULT_WORKFLOW,
    WorkflowDefinition,
    advance,
    initial_state_for,
    normalize_document_type,
)

from .contracts import Identifier, IdentifierMatch, LinkOutcome, LinkStatus
from .normalize import identifier_type_for, normalize_confidence, normalize_identifier

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from freightlink.domain.model import ClassifiedDocument
    from freightlink.domain.ports import LinkingRepositories, ShipmentRepository

log = getLogger(__name__)

IDENTIFIER_RANK: Final[tuple[IdentifierType, ...]] = (
    IdentifierType.BOOKING_NUMBER,
    IdentifierType.BL_NUMBER,
    IdentifierType.CONTAINER_NUMBER,
)

IDENTIFIER_WEIGHTS: Final[dict[IdentifierType, float]] = {
    IdentifierType.BOOKING_NUMBER: 0.95,
    IdentifierType.BL_NUMBER: 0.90,
    IdentifierType.CONTAINER_NUMBER: 0.75,
}

SHIPMENT_CREATING_TYPES: Final[frozenset[str]] = frozenset(
    {"booking_confirmation", "booking_amendment"}
)


def collect_identifiers(
    document: ClassifiedDocument,
    *,
    exclude: frozenset[tuple[IdentifierType, str]] = frozenset(),
) -> list[Identifier]:
    """Normalized, de-duplicated identifiers of a document, most specific first.

    When the extractor reports the same value twice, the higher confidence is kept.
    """

    best: dict[tuple[IdentifierType, str], float] = {}
    for entity in document.entities:
        identifier_type = identifier_type_for(entity.entity_type)
        if identifier_type is None:
            continue
        value = normalize_identifier(identifier_type, entity.entity_value)
        if value is None:
            log.debug(
                "Skipping unusable %s %r on email %s",
                identifier_type,
                entity.entity_value,
                document.email_id,
            )
            continue
        key = (identifier_type, value)
        if key in exclude:
            continue
        confidence = normalize_confidence(entity.confidence)
        best[key] = max(best.get(key, 0.0), confidence)

    identifiers = [
        Identifier(identifier_type=identifier_type, value=value, confidence=confidence)
        for (identifier_type, value), confidence in best.items()
    ]
    identifiers.sort(
        key=lambda item: (
            IDENTIFIER_RANK.index(item.identifier_type),
            -item.confidence,
            item.value,
        )
    )
    return identifiers


@dataclass(slots=True)
class LinkingResolver:
    """Resolve documents against the shipment registry inside a unit of work.

    The resolver stages its changes on the given repositories; committing them is
    the caller's job.
    """

    workflow: WorkflowDefinition = DEFAULT_WORKFLOW
    creating_document_types: frozenset[str] = SHIPMENT_CREATING_TYPES
    weights: Mapping[IdentifierType, float] = field(
        default_factory=lambda: dict(IDENTIFIER_WEIGHTS)
    )

    def creates_shipment(self, document_type: str) -> bool:
        return normalize_document_type(document_type) in self.creating_document_types

    def link_confidence(self, identifier: Identifier) -> float:
        return round(self.weights[identifier.identifier_type] * identifier.confidence, 4)

    def resolve(
        self,
        document: ClassifiedDocument,
        repositories: LinkingRepositories,
    ) -> LinkOutcome:
        existing = repositories.links.list_for_email(document.email_id)
        if existing:
            link = existing[0]
            return LinkOutcome(
                email_id=document.email_id,
                status=LinkStatus.ALREADY_LINKED,
                shipment_id=link.shipment_id,
                link_method=link.link_method,
                confidence=link.confidence,
            )

        duplicate = self._find_duplicate(document, repositories)
        if duplicate is not None:
            log.info(
                "Email %s repeats message %s already linked via email %s",
                document.email_id,
                document.message_id,
                duplicate.email_id,
            )
            return LinkOutcome(
                email_id=document.email_id,
                status=LinkStatus.DUPLICATE,
                shipment_id=duplicate.shipment_id,
                reason=f"message already linked via email {duplicate.email_id}",
            )

        identifiers = collect_identifiers(
            document,
            exclude=self._rejected_identifiers(document.email_id, repositories),
        )
        if not identifiers:
            return LinkOutcome(
                email_id=document.email_id,
                status=LinkStatus.UNIDENTIFIED,
                reason="no usable booking, BL or container number",
            )

        matches = [_match(identifier, repositories.shipments) for identifier in identifiers]
        for match in matches:
            shipment = match.unique
            if shipment is not None:
                return self._link(document, shipment, match.identifier, matches, repositories)

        if any(match.is_ambiguous for match in matches):
            log.warning(
                "Email %s matches several shipments; queued for review",
                document.email_id,
            )
            return self._queue(document, matches, repositories, LinkStatus.AMBIGUOUS)

        booking = next(
            (
                item
                for item in identifiers
                if item.identifier_type is IdentifierType.BOOKING_NUMBER
            ),
            None,
        )
        if booking is not None and self.creates_shipment(document.document_type):
            return self._create(document, booking, identifiers, repositories)

        return self._queue(document, matches, repositories, LinkStatus.PENDING)

    def _find_duplicate(
        self,
        document: ClassifiedDocument,
        repositories: LinkingRepositories,
    ) -> DocumentLink | None:
        if not document.message_id:
            return None
        for link in repositories.links.find_by_message_id(document.message_id):
            if link.email_id != document.email_id:
                return link
        return None

    @staticmethod
    def _rejected_identifiers(
        email_id: str,
        repositories: LinkingRepositories,
    ) -> frozenset[tuple[IdentifierType, str]]:
        return frozenset(
            (candidate.entity_type, candidate.entity_value)
            for candidate in repositories.candidates.list_for_email(email_id)
            if candidate.status is CandidateStatus.REJECTED
        )

    def _link(
        self,
        document: ClassifiedDocument,
        shipment: Shipment,
        identifier: Identifier,
        matches: list[IdentifierMatch],
        repositories: LinkingRepositories,
        *,
        status: LinkStatus = LinkStatus.LINKED,
    ) -> LinkOutcome:
        confidence = self.link_confidence(identifier)
        link_method = LinkMethod.for_identifier(identifier.identifier_type)
        repositories.links.add(
            DocumentLink(
                shipment_id=shipment.id,
                email_id=document.email_id,
                document_type=document.document_type,
                link_method=link_method,
                confidence=confidence,
                message_id=document.message_id,
                matched_value=identifier.value,
            )
        )

        if status is LinkStatus.LINKED:
            _enrich(shipment, matches)
        change = advance(shipment, document.document_type, workflow=self.workflow)
        if change is not None:
            repositories.history.add(change.to_transition(shipment, email_id=document.email_id))
        # every accepted link bumps the shipment so concurrent writers serialize on it
        shipment.touch()
        repositories.shipments.save(shipment)
        close_open_candidates(document.email_id, shipment, repositories)

        return LinkOutcome(
            email_id=document.email_id,
            status=status,
            shipment_id=shipment.id,
            booking_number=shipment.booking_number,
            link_method=link_method,
            confidence=confidence,
            state_change=change,
        )

    def _create(
        self,
        document: ClassifiedDocument,
        booking: Identifier,
        identifiers: list[Identifier],
        repositories: LinkingRepositories,
    ) -> LinkOutcome:
        initial = initial_state_for(document.document_type, workflow=self.workflow)
        bl_number = next(
            (
                item.value
                for item in identifiers
                if item.identifier_type is IdentifierType.BL_NUMBER
            ),
            None,
        )
        shipment = Shipment(
            booking_number=booking.value,
            bl_number=bl_number,
            container_numbers=[
                item.value
                for item in identifiers
                if item.identifier_type is IdentifierType.CONTAINER_NUMBER
            ],
            workflow_state=initial.state,
            workflow_phase=initial.phase,
            status=initial.status,
        )
        repositories.shipments.add(shipment)
        repositories.history.add(
            WorkflowTransition(
                shipment_id=shipment.id,
                from_state=None,
                to_state=initial.state,
                reason=TransitionReason.CREATE,
                document_type=document.document_type,
                email_id=document.email_id,
            )
        )
        log.info("Created shipment %s from email %s", booking.value, document.email_id)
        return self._link(
            document,
            shipment,
            booking,
            [],
            repositories,
            status=LinkStatus.CREATED,
        )

    def _queue(
        self,
        document: ClassifiedDocument,
        matches: list[IdentifierMatch],
        repositories: LinkingRepositories,
        status: LinkStatus,
    ) -> LinkOutcome:
        candidate_ids: list[UUID] = []
        for match in matches:
            identifier = match.identifier
            candidate_status = (
                CandidateStatus.AMBIGUOUS if match.is_ambiguous else CandidateStatus.PENDING
            )
            shipment_ids = sorted((shipment.id for shipment in match.shipments), key=str)
            candidate = repositories.candidates.find(
                document.email_id,
                identifier.identifier_type,
                identifier.value,
            )
            if candidate is None:
                candidate = LinkCandidate(
                    email_id=document.email_id,
                    entity_type=identifier.identifier_type,
                    entity_value=identifier.value,
                    confidence=identifier.confidence,
                    status=candidate_status,
                    document_type=document.document_type,
                    message_id=document.message_id,
                    candidate_shipment_ids=shipment_ids,
                )
                repositories.candidates.add(candidate)
            else:
                candidate.refresh(
                    status=candidate_status,
                    confidence=identifier.confidence,
                    candidate_shipment_ids=shipment_ids,
                    document_type=document.document_type,
                )
            candidate_ids.append(candidate.id)

        return LinkOutcome(
            email_id=document.email_id,
            status=status,
            candidate_ids=tuple(candidate_ids),
        )


def close_open_candidates(
    email_id: str,
    shipment: Shipment,
    repositories: LinkingRepositories,
) -> None:
    for candidate in repositories.candidates.list_for_email(email_id):
        if candidate.is_open:
            candidate.confirm(shipment.id)


def _match(identifier: Identifier, shipments: ShipmentRepository) -> IdentifierMatch:
    found = shipments.find_by_identifier(identifier.identifier_type, identifier.value)
    if len(found) > 1:
        active = [shipment for shipment in found if not shipment.is_cancelled]
        if len(active) == 1:
            found = active
    return IdentifierMatch(identifier=identifier, shipments=tuple(found))


def _enrich(shipment: Shipment, matches: list[IdentifierMatch]) -> None:
    """Attach identifiers of the document that no other shipment claims."""

    unclaimed = [match.identifier for match in matches if not match.shipments]
    bl_number = next(
        (item.value for item in unclaimed if item.identifier_type is IdentifierType.BL_NUMBER),
        None,
    )
    containers = [
        item.value for item in unclaimed if item.identifier_type is IdentifierType.CONTAINER_NUMBER
    ]
    if shipment.enrich(bl_number=bl_number, container_numbers=containers):
        log.info("Enriched shipment %s with identifiers from later documents", shipment.label)
