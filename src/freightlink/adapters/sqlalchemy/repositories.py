"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, insert, select

from freightlink.adapters.sqlalchemy.mappings import (
    link_candidate_table,
    reconciliation_checkpoint_table,
    shipment_container_table,
    shipment_document_table,
    shipment_table,
    workflow_transition_table,
)
from freightlink.domain.model import (
    DocumentLink,
    IdentifierType,
    LinkCandidate,
    ReconciliationCheckpoint,
    Shipment,
    WorkflowTransition,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable
    from uuid import UUID

    from sqlalchemy.orm import Session

    from freightlink.domain.model import CandidateStatus


class SqlAlchemyShipmentRepository:
    """Shipment registry; the mapper's version column provides the compare-and-swap."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Shipment) -> None:
        self.session.add(entity)
        self.session.flush()
        self._sync_containers(entity)

    def get(self, shipment_id: UUID) -> Shipment | None:
        return self.session.get(Shipment, shipment_id)

    def find_by_identifier(
        self,
        identifier_type: IdentifierType,
        value: str,
    ) -> list[Shipment]:
        stmt = select(Shipment)
        if identifier_type is IdentifierType.BOOKING_NUMBER:
            stmt = stmt.where(shipment_table.c.booking_number == value)
        elif identifier_type is IdentifierType.BL_NUMBER:
            stmt = stmt.where(shipment_table.c.bl_number == value)
        else:
            owners = select(shipment_container_table.c.shipment_id).where(
                shipment_container_table.c.container_number == value
            )
            stmt = stmt.where(shipment_table.c.id.in_(owners))
        stmt = stmt.order_by(shipment_table.c.created_at, shipment_table.c.id)
        return list(self.session.execute(stmt).scalars().all())

    def save(self, shipment: Shipment) -> None:
        self.session.add(shipment)
        self.session.flush()
        self._sync_containers(shipment)

    def list_ids(self, *, after: UUID | None = None, limit: int) -> list[UUID]:
        stmt = select(shipment_table.c.id).order_by(shipment_table.c.id).limit(limit)
        if after is not None:
            stmt = stmt.where(shipment_table.c.id > after)
        return list(self.session.execute(stmt).scalars().all())

    def _sync_containers(self, shipment: Shipment) -> None:
        stmt = select(shipment_container_table.c.container_number).where(
            shipment_container_table.c.shipment_id == shipment.id
        )
        stored = set(self.session.execute(stmt).scalars().all())
        wanted = set(shipment.container_numbers)

        missing = wanted - stored
        if missing:
            self.session.execute(
                insert(shipment_container_table),
                [
                    {"shipment_id": shipment.id, "container_number": container}
                    for container in sorted(missing)
                ],
            )
        stale = stored - wanted
        if stale:
            self.session.execute(
                delete(shipment_container_table)
                .where(shipment_container_table.c.shipment_id == shipment.id)
                .where(shipment_container_table.c.container_number.in_(stale))
            )


class SqlAlchemyDocumentLinkRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: DocumentLink) -> None:
        self.session.add(entity)

    def get(self, shipment_id: UUID, email_id: str) -> DocumentLink | None:
        return self.session.get(DocumentLink, (shipment_id, email_id))

    def update(self, links: Iterable[DocumentLink]) -> None:
        for link in links:
            self.session.add(link)
        self.session.flush()

    def list_for_email(self, email_id: str) -> list[DocumentLink]:
        stmt = (
            select(DocumentLink)
            .where(shipment_document_table.c.email_id == email_id)
            .order_by(shipment_document_table.c.linked_at)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_for_shipment(self, shipment_id: UUID) -> list[DocumentLink]:
        stmt = (
            select(DocumentLink)
            .where(shipment_document_table.c.shipment_id == shipment_id)
            .order_by(shipment_document_table.c.linked_at)
        )
        return list(self.session.execute(stmt).scalars().all())

    def find_by_message_id(self, message_id: str) -> list[DocumentLink]:
        stmt = select(DocumentLink).where(shipment_document_table.c.message_id == message_id)
        return list(self.session.execute(stmt).scalars().all())

    def linked_email_ids(self, email_ids: Collection[str]) -> set[str]:
        if not email_ids:
            return set()
        stmt = (
            select(shipment_document_table.c.email_id)
            .where(shipment_document_table.c.email_id.in_(list(email_ids)))
            .distinct()
        )
        return set(self.session.execute(stmt).scalars().all())

    def document_types_by_shipment(
        self,
        shipment_ids: Collection[UUID],
    ) -> dict[UUID, list[str]]:
        if not shipment_ids:
            return {}
        stmt = select(
            shipment_document_table.c.shipment_id,
            shipment_document_table.c.document_type,
        ).where(shipment_document_table.c.shipment_id.in_(list(shipment_ids)))
        grouped: defaultdict[UUID, list[str]] = defaultdict(list)
        for shipment_id, document_type in self.session.execute(stmt).all():
            grouped[cast("UUID", shipment_id)].append(cast(str, document_type))
        return dict(grouped)


class SqlAlchemyLinkCandidateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: LinkCandidate) -> None:
        self.session.add(entity)

    def get(self, candidate_id: UUID) -> LinkCandidate | None:
        return self.session.get(LinkCandidate, candidate_id)

    def find(
        self,
        email_id: str,
        entity_type: IdentifierType,
        entity_value: str,
    ) -> LinkCandidate | None:
        stmt = (
            select(LinkCandidate)
            .where(link_candidate_table.c.email_id == email_id)
            .where(link_candidate_table.c.entity_type == entity_type)
            .where(link_candidate_table.c.entity_value == entity_value)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_email(self, email_id: str) -> list[LinkCandidate]:
        stmt = (
            select(LinkCandidate)
            .where(link_candidate_table.c.email_id == email_id)
            .order_by(link_candidate_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars().all())

    def query(
        self,
        *,
        status: CandidateStatus | None = None,
        limit: int | None = None,
    ) -> list[LinkCandidate]:
        stmt = select(LinkCandidate).order_by(
            link_candidate_table.c.created_at,
            link_candidate_table.c.id,
        )
        if status is not None:
            stmt = stmt.where(link_candidate_table.c.status == status)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())


class SqlAlchemyWorkflowHistoryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: WorkflowTransition) -> None:
        self.session.add(entity)

    def list_for_shipment(self, shipment_id: UUID) -> list[WorkflowTransition]:
        stmt = (
            select(WorkflowTransition)
            .where(workflow_transition_table.c.shipment_id == shipment_id)
            .order_by(workflow_transition_table.c.transitioned_at)
        )
        return list(self.session.execute(stmt).scalars().all())


class SqlAlchemyCheckpointRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, name: str) -> ReconciliationCheckpoint | None:
        return self.session.get(ReconciliationCheckpoint, name)

    def save(self, name: str, position: str) -> None:
        checkpoint = self.get(name)
        if checkpoint is None:
            self.session.add(ReconciliationCheckpoint(name=name, position=position))
            return
        checkpoint.position = position
        checkpoint.updated_at = utcnow()

    def clear(self, name: str) -> None:
        self.session.execute(
            delete(reconciliation_checkpoint_table).where(
                reconciliation_checkpoint_table.c.name == name
            )
        )


if TYPE_CHECKING:
    from freightlink.domain.ports.persistence import (
        CheckpointRepository,
        DocumentLinkRepository,
        LinkCandidateRepository,
        ShipmentRepository,
        WorkflowHistoryRepository,
    )

    _session_stub = cast("Session", object())
    _shipment_repo: ShipmentRepository = SqlAlchemyShipmentRepository(_session_stub)
    _link_repo: DocumentLinkRepository = SqlAlchemyDocumentLinkRepository(_session_stub)
    _candidate_repo: LinkCandidateRepository = SqlAlchemyLinkCandidateRepository(_session_stub)
    _history_repo: WorkflowHistoryRepository = SqlAlchemyWorkflowHistoryRepository(_session_stub)
    _checkpoint_repo: CheckpointRepository = SqlAlchemyCheckpointRepository(_session_stub)
