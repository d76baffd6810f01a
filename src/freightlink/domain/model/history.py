"""Audit records written alongside shipment mutations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from uuid import UUID  # noqa: TC003

from freightlink.domain.model.entity import Entity, utcnow
from freightlink.domain.model.enums import TransitionReason, WorkflowState


@dataclass(eq=False, kw_only=True)
class WorkflowTransition(Entity):
    """Append-only record of one applied workflow state change."""

    shipment_id: UUID
    from_state: WorkflowState | None
    to_state: WorkflowState
    reason: TransitionReason
    document_type: str | None = None
    email_id: str | None = None
    transitioned_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class ReconciliationCheckpoint:
    """Last processed position of a named, resumable batch job."""

    name: str
    position: str
    updated_at: datetime = field(default_factory=utcnow)
