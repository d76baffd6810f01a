"""Public domain model surface."""

from __future__ import annotations

from freightlink.domain.model.documents import (
    ClassifiedDocument,
    DocumentLink,
    ExtractedEntity,
    LinkCandidate,
)
from freightlink.domain.model.entity import AuditedEntity, Entity, new_id, utcnow
from freightlink.domain.model.enums import (
    CandidateStatus,
    IdentifierType,
    LinkMethod,
    ShipmentStatus,
    TransitionReason,
    WorkflowPhase,
    WorkflowState,
)
from freightlink.domain.model.history import ReconciliationCheckpoint, WorkflowTransition
from freightlink.domain.model.shipment import Shipment

__all__ = [
    "AuditedEntity",
    "CandidateStatus",
    "ClassifiedDocument",
    "DocumentLink",
    "Entity",
    "ExtractedEntity",
    "IdentifierType",
    "LinkCandidate",
    "LinkMethod",
    "ReconciliationCheckpoint",
    "Shipment",
    "ShipmentStatus",
    "TransitionReason",
    "WorkflowPhase",
    "WorkflowState",
    "WorkflowTransition",
    "new_id",
    "utcnow",
]
