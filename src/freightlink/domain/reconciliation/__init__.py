"""Batch verification and repair of shipment links and workflow states."""

from __future__ import annotations

from .backfill import CHECKPOINT_NAME, BackfillOptions, backfill
from .batching import BatchRunner, ItemResult
from .report import (
    BackfillReport,
    DriftEntry,
    LinkingSummary,
    ShipmentTransition,
    StateBreakdown,
    VerifyReport,
)
from .verify import verify

__all__ = [
    "CHECKPOINT_NAME",
    "BackfillOptions",
    "BackfillReport",
    "BatchRunner",
    "DriftEntry",
    "ItemResult",
    "LinkingSummary",
    "ShipmentTransition",
    "StateBreakdown",
    "VerifyReport",
    "backfill",
    "verify",
]
