"""Outcome types shared by the linking resolver and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from freightlink.domain.model import IdentifierType, LinkMethod, Shipment
    from freightlink.domain.workflow import StateChange


class LinkStatus(StrEnum):
    """What happened to one document."""

    LINKED = "linked"
    CREATED = "created"
    ALREADY_LINKED = "already_linked"
    DUPLICATE = "duplicate"
    AMBIGUOUS = "ambiguous"
    PENDING = "pending"
    UNIDENTIFIED = "unidentified"


@dataclass(frozen=True, slots=True)
class Identifier:
    """A normalized identifier taken from one document's entities."""

    identifier_type: IdentifierType
    value: str
    confidence: float


@dataclass(slots=True, kw_only=True)
class IdentifierMatch:
    """Shipments found for one identifier, after discarding cancelled ones on ties."""

    identifier: Identifier
    shipments: tuple[Shipment, ...] = ()

    @property
    def unique(self) -> Shipment | None:
        return self.shipments[0] if len(self.shipments) == 1 else None

    @property
    def is_ambiguous(self) -> bool:
        return len(self.shipments) > 1


@dataclass(slots=True, kw_only=True)
class LinkOutcome:
    """Result of resolving one document."""

    email_id: str
    status: LinkStatus
    shipment_id: UUID | None = None
    booking_number: str | None = None
    link_method: LinkMethod | None = None
    confidence: float | None = None
    state_change: StateChange | None = None
    candidate_ids: tuple[UUID, ...] = field(default_factory=tuple)
    reason: str | None = None

    @property
    def linked(self) -> bool:
        return self.status in {LinkStatus.LINKED, LinkStatus.CREATED}

    @property
    def unresolved(self) -> bool:
        return self.status in {LinkStatus.AMBIGUOUS, LinkStatus.PENDING}
