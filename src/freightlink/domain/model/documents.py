"""Classified documents, their shipment links and unresolved link candidates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from uuid import UUID  # noqa: TC003

from freightlink.domain.model.entity import AuditedEntity, utcnow
from freightlink.domain.model.enums import CandidateStatus, IdentifierType, LinkMethod


@dataclass(frozen=True, slots=True)
class ExtractedEntity:
    """One entity extracted from an email by the upstream extractor."""

    entity_type: str
    entity_value: str
    confidence: float | None = None


@dataclass(frozen=True, slots=True)
class ClassifiedDocument:
    """An email with its current classification and extracted entities."""

    email_id: str
    document_type: str
    entities: tuple[ExtractedEntity, ...] = ()
    message_id: str | None = None

    @property
    def dedup_key(self) -> str:
        """Stable identity of the physical message, falling back to the email id."""

        return self.message_id or self.email_id


@dataclass(eq=False, kw_only=True)
class DocumentLink:
    """Association of one email with one shipment; keyed by (shipment_id, email_id)."""

    shipment_id: UUID
    email_id: str
    document_type: str
    link_method: LinkMethod
    confidence: float
    message_id: str | None = None
    matched_value: str | None = None
    linked_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class LinkCandidate(AuditedEntity):
    """An identifier of an email that matched no shipment or several."""

    email_id: str
    entity_type: IdentifierType
    entity_value: str
    confidence: float
    status: CandidateStatus = CandidateStatus.PENDING
    document_type: str | None = None
    message_id: str | None = None
    candidate_shipment_ids: list[UUID] = field(default_factory=list)
    shipment_id: UUID | None = None
    note: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status in {CandidateStatus.PENDING, CandidateStatus.AMBIGUOUS}

    def refresh(
        self,
        *,
        status: CandidateStatus,
        confidence: float,
        candidate_shipment_ids: list[UUID],
        document_type: str | None = None,
    ) -> None:
        if not self.is_open:
            return
        self.status = status
        self.confidence = confidence
        self.candidate_shipment_ids = list(candidate_shipment_ids)
        if document_type is not None:
            self.document_type = document_type
        self.touch()

    def confirm(self, shipment_id: UUID, *, note: str | None = None) -> None:
        if self.status is CandidateStatus.REJECTED:
            raise ValueError(f"Candidate {self.id} was rejected and cannot be confirmed")
        self.status = CandidateStatus.CONFIRMED
        self.shipment_id = shipment_id
        if note is not None:
            self.note = note
        self.touch()

    def reject(self, *, note: str | None = None) -> None:
        if self.status is CandidateStatus.CONFIRMED:
            raise ValueError(f"Candidate {self.id} was confirmed and cannot be rejected")
        self.status = CandidateStatus.REJECTED
        self.note = note
        self.touch()
