"""Shipment aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from freightlink.domain.model.entity import AuditedEntity
from freightlink.domain.model.enums import (
    IdentifierType,
    ShipmentStatus,
    WorkflowPhase,
    WorkflowState,
)

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(eq=False, kw_only=True)
class Shipment(AuditedEntity):
    """A cargo movement tracked through the workflow.

    ``booking_number``, ``bl_number`` and ``container_numbers`` are the natural keys
    used for matching and are stored normalized. ``version`` is the optimistic
    concurrency counter maintained by persistence; domain code never bumps it.
    """

    booking_number: str | None = None
    bl_number: str | None = None
    container_numbers: list[str] = field(default_factory=list)
    workflow_state: WorkflowState = WorkflowState.BOOKING_CONFIRMATION_RECEIVED
    workflow_phase: WorkflowPhase = WorkflowPhase.PRE_SHIPMENT
    status: ShipmentStatus = ShipmentStatus.BOOKED
    version: int = 0

    @property
    def is_cancelled(self) -> bool:
        return self.status is ShipmentStatus.CANCELLED

    @property
    def label(self) -> str:
        return self.booking_number or self.bl_number or str(self.id)

    def identifier(self, identifier_type: IdentifierType) -> tuple[str, ...]:
        if identifier_type is IdentifierType.BOOKING_NUMBER:
            return (self.booking_number,) if self.booking_number else ()
        if identifier_type is IdentifierType.BL_NUMBER:
            return (self.bl_number,) if self.bl_number else ()
        return tuple(self.container_numbers)

    def move_to(
        self,
        state: WorkflowState,
        *,
        phase: WorkflowPhase,
        status: ShipmentStatus,
    ) -> None:
        """Replace the workflow triple in one step."""

        self.workflow_state = state
        self.workflow_phase = phase
        self.status = status
        self.touch()

    def enrich(
        self,
        *,
        bl_number: str | None = None,
        container_numbers: Iterable[str] = (),
    ) -> bool:
        """Fill in identifiers learned from later documents; never overwrite."""

        changed = False
        if bl_number and self.bl_number is None:
            self.bl_number = bl_number
            changed = True
        for container in container_numbers:
            if container not in self.container_numbers:
                # reassign so change tracking sees a new list
                self.container_numbers = [*self.container_numbers, container]
                changed = True
        if changed:
            self.touch()
        return changed
