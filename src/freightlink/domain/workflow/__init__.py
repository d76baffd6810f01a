"""Workflow state table and state machine."""

from __future__ import annotations

from .definitions import (
    DEFAULT_WORKFLOW,
    WORKFLOW_TABLE_VERSION,
    StateDefinition,
    WorkflowDefinition,
    normalize_document_type,
)
from .state_machine import (
    Rederivation,
    StateChange,
    advance,
    apply_state,
    derive,
    initial_state_for,
    rederive,
)

__all__ = [
    "DEFAULT_WORKFLOW",
    "WORKFLOW_TABLE_VERSION",
    "Rederivation",
    "StateChange",
    "StateDefinition",
    "WorkflowDefinition",
    "advance",
    "apply_state",
    "derive",
    "initial_state_for",
    "normalize_document_type",
    "rederive",
]
