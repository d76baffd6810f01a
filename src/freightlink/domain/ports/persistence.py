"""Ports for persisting shipment aggregates and their links."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from freightlink.domain.model import (
    CandidateStatus,
    DocumentLink,
    IdentifierType,
    LinkCandidate,
    ReconciliationCheckpoint,
    Shipment,
    WorkflowTransition,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ShipmentRepository(Repository[Shipment], Protocol):
    """The shipment registry: lookup by natural key and compare-and-swap updates."""

    def get(self, shipment_id: UUID) -> Shipment | None: ...

    def find_by_identifier(
        self,
        identifier_type: IdentifierType,
        value: str,
    ) -> list[Shipment]: ...

    def save(self, shipment: Shipment) -> None:
        """Persist changes to ``shipment``; raises ``ConcurrentUpdateError`` on a lost race."""
        ...

    def list_ids(self, *, after: UUID | None = None, limit: int) -> list[UUID]: ...


@runtime_checkable
class DocumentLinkRepository(Repository[DocumentLink], Protocol):
    """Persistence contract for shipment-document links."""

    def get(self, shipment_id: UUID, email_id: str) -> DocumentLink | None: ...

    def update(self, links: Iterable[DocumentLink]) -> None:
        """Persist changes made to already stored links (reclassification)."""
        ...

    def list_for_email(self, email_id: str) -> list[DocumentLink]: ...

    def list_for_shipment(self, shipment_id: UUID) -> list[DocumentLink]: ...

    def find_by_message_id(self, message_id: str) -> list[DocumentLink]: ...

    def linked_email_ids(self, email_ids: Collection[str]) -> set[str]: ...

    def document_types_by_shipment(
        self,
        shipment_ids: Collection[UUID],
    ) -> dict[UUID, list[str]]: ...


@runtime_checkable
class LinkCandidateRepository(Repository[LinkCandidate], Protocol):
    """Persistence contract for unresolved link candidates."""

    def get(self, candidate_id: UUID) -> LinkCandidate | None: ...

    def find(
        self,
        email_id: str,
        entity_type: IdentifierType,
        entity_value: str,
    ) -> LinkCandidate | None: ...

    def list_for_email(self, email_id: str) -> list[LinkCandidate]: ...

    def query(
        self,
        *,
        status: CandidateStatus | None = None,
        limit: int | None = None,
    ) -> list[LinkCandidate]: ...


@runtime_checkable
class WorkflowHistoryRepository(Repository[WorkflowTransition], Protocol):
    """Append-only log of workflow transitions."""

    def list_for_shipment(self, shipment_id: UUID) -> list[WorkflowTransition]: ...


@runtime_checkable
class CheckpointRepository(Protocol):
    """Positions of resumable batch jobs."""

    def get(self, name: str) -> ReconciliationCheckpoint | None: ...

    def save(self, name: str, position: str) -> None: ...

    def clear(self, name: str) -> None: ...
