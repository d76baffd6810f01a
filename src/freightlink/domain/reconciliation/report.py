"""Result types of the verify and backfill runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from freightlink.domain.linking import LinkStatus

if TYPE_CHECKING:
    from uuid import UUID

    from freightlink.domain.linking import LinkOutcome
    from freightlink.domain.model import WorkflowState


@dataclass(frozen=True, slots=True)
class DriftEntry:
    shipment_id: UUID
    booking_number: str | None
    stored_state: WorkflowState
    derived_state: WorkflowState
    ahead: bool

    @property
    def direction(self) -> str:
        return "ahead" if self.ahead else "behind"


@dataclass(slots=True)
class StateBreakdown:
    total: int = 0
    drifted: int = 0

    @property
    def matching(self) -> int:
        return self.total - self.drifted


@dataclass(slots=True)
class VerifyReport:
    """Stored versus derived workflow state for every shipment; nothing is changed."""

    total: int = 0
    matching: int = 0
    drifted: list[DriftEntry] = field(default_factory=list)
    by_state: dict[WorkflowState, StateBreakdown] = field(default_factory=dict)

    @property
    def drift_count(self) -> int:
        return len(self.drifted)

    def record(
        self,
        *,
        shipment_id: UUID,
        booking_number: str | None,
        stored: WorkflowState,
        derived: WorkflowState,
        ahead: bool,
    ) -> None:
        self.total += 1
        breakdown = self.by_state.setdefault(stored, StateBreakdown())
        breakdown.total += 1
        if stored is derived:
            self.matching += 1
            return
        breakdown.drifted += 1
        self.drifted.append(
            DriftEntry(
                shipment_id=shipment_id,
                booking_number=booking_number,
                stored_state=stored,
                derived_state=derived,
                ahead=ahead,
            )
        )


@dataclass(slots=True)
class LinkingSummary:
    """Counters of the linking phase, one per ``LinkStatus`` plus failures."""

    processed: int = 0
    errors: int = 0
    passes: int = 0
    counts: dict[LinkStatus, int] = field(default_factory=dict)

    def record(self, outcome: LinkOutcome) -> None:
        self.processed += 1
        self.counts[outcome.status] = self.counts.get(outcome.status, 0) + 1

    def record_error(self) -> None:
        self.processed += 1
        self.errors += 1

    def count(self, status: LinkStatus) -> int:
        return self.counts.get(status, 0)

    @property
    def linked(self) -> int:
        return self.count(LinkStatus.LINKED) + self.count(LinkStatus.CREATED)

    @property
    def unresolved(self) -> int:
        return self.count(LinkStatus.AMBIGUOUS) + self.count(LinkStatus.PENDING)


@dataclass(slots=True)
class ShipmentTransition:
    shipment_id: UUID
    booking_number: str | None
    old_state: WorkflowState
    new_state: WorkflowState


@dataclass(slots=True)
class BackfillReport:
    """Outcome of a backfill run.

    ``transitions`` holds one entry per shipment whose state changed during the run,
    from its state before the run to its state after it.
    """

    skipped: int = 0
    errors: int = 0
    linking: LinkingSummary = field(default_factory=LinkingSummary)
    regressions: list[DriftEntry] = field(default_factory=list)
    cancelled: bool = False
    _transitions: dict[UUID, ShipmentTransition] = field(default_factory=dict)

    @property
    def updated(self) -> int:
        return len(self.transitions)

    @property
    def transitions(self) -> list[ShipmentTransition]:
        return [
            transition
            for transition in self._transitions.values()
            if transition.old_state is not transition.new_state
        ]

    def record_transition(
        self,
        *,
        shipment_id: UUID,
        booking_number: str | None,
        old_state: WorkflowState,
        new_state: WorkflowState,
    ) -> None:
        existing = self._transitions.get(shipment_id)
        if existing is None:
            self._transitions[shipment_id] = ShipmentTransition(
                shipment_id=shipment_id,
                booking_number=booking_number,
                old_state=old_state,
                new_state=new_state,
            )
            return
        existing.new_state = new_state
        existing.booking_number = existing.booking_number or booking_number

    def has_transition(self, shipment_id: UUID) -> bool:
        return shipment_id in self._transitions
