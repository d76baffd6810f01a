"""Monotonic workflow state transitions and order-independent re-derivation."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from freightlink.domain.model import TransitionReason, WorkflowState, WorkflowTransition

from .definitions import DEFAULT_WORKFLOW, StateDefinition, WorkflowDefinition

if TYPE_CHECKING:
    from collections.abc import Iterable

    from freightlink.domain.model import Shipment

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StateChange:
    """A workflow transition that has been applied to a shipment."""

    from_state: WorkflowState | None
    to_state: WorkflowState
    reason: TransitionReason
    document_type: str | None = None

    def to_transition(
        self,
        shipment: Shipment,
        *,
        email_id: str | None = None,
    ) -> WorkflowTransition:
        return WorkflowTransition(
            shipment_id=shipment.id,
            from_state=self.from_state,
            to_state=self.to_state,
            reason=self.reason,
            document_type=self.document_type,
            email_id=email_id,
        )


@dataclass(frozen=True, slots=True)
class Rederivation:
    """Outcome of comparing a shipment's stored state with its derived state."""

    derived: StateDefinition
    change: StateChange | None = None
    regression_skipped: bool = False


def advance(
    shipment: Shipment,
    document_type: str,
    *,
    workflow: WorkflowDefinition = DEFAULT_WORKFLOW,
) -> StateChange | None:
    """Move ``shipment`` forward for a newly linked document, never backwards.

    Unmapped document types leave the shipment untouched. The terminal state is
    applied regardless of order; anything else must strictly outrank the current
    state.
    """

    candidate = workflow.candidate_for(document_type)
    if candidate is None:
        log.warning(
            "Unmapped document type %r for shipment %s; workflow unchanged",
            document_type,
            shipment.label,
        )
        return None

    current = workflow.definition_for(shipment.workflow_state)
    if candidate.state is current.state:
        return None
    if candidate.terminal:
        return apply_state(shipment, candidate, TransitionReason.CANCEL, document_type)
    if candidate.order <= current.order:
        log.debug(
            "Ignoring %s (order %s) for shipment %s at %s (order %s)",
            candidate.state,
            candidate.order,
            shipment.label,
            current.state,
            current.order,
        )
        return None
    return apply_state(shipment, candidate, TransitionReason.ADVANCE, document_type)


def derive(
    document_types: Iterable[str],
    *,
    workflow: WorkflowDefinition = DEFAULT_WORKFLOW,
) -> StateDefinition:
    """Reduce a set of linked document types to one state.

    The terminal state wins if any document maps to it; otherwise the highest
    ranked mapped state, floored at the workflow's initial state.
    """

    best = workflow.initial
    for document_type in document_types:
        candidate = workflow.candidate_for(document_type)
        if candidate is None:
            continue
        if candidate.terminal:
            return candidate
        if candidate.order > best.order:
            best = candidate
    return best


def rederive(
    shipment: Shipment,
    document_types: Iterable[str],
    *,
    allow_regression: bool = False,
    workflow: WorkflowDefinition = DEFAULT_WORKFLOW,
) -> Rederivation:
    """Bring ``shipment`` in line with the state derived from its documents."""

    derived = derive(document_types, workflow=workflow)
    current = workflow.definition_for(shipment.workflow_state)
    if derived.state is current.state:
        return Rederivation(derived=derived)

    if derived.terminal or derived.order > current.order:
        change = apply_state(shipment, derived, TransitionReason.REDERIVE)
        return Rederivation(derived=derived, change=change)

    if not allow_regression:
        log.info(
            "Shipment %s is at %s but its documents only support %s; leaving it",
            shipment.label,
            current.state,
            derived.state,
        )
        return Rederivation(derived=derived, regression_skipped=True)

    change = apply_state(shipment, derived, TransitionReason.CORRECTION)
    return Rederivation(derived=derived, change=change)


def initial_state_for(
    document_type: str,
    *,
    workflow: WorkflowDefinition = DEFAULT_WORKFLOW,
) -> StateDefinition:
    """State a newly created shipment starts in for its first document."""

    candidate = workflow.candidate_for(document_type)
    if candidate is None or candidate.terminal or candidate.order < workflow.initial.order:
        return workflow.initial
    return candidate


def apply_state(
    shipment: Shipment,
    definition: StateDefinition,
    reason: TransitionReason,
    document_type: str | None = None,
) -> StateChange:
    previous = shipment.workflow_state
    shipment.move_to(definition.state, phase=definition.phase, status=definition.status)
    log.debug("Shipment %s: %s -> %s (%s)", shipment.label, previous, definition.state, reason)
    return StateChange(
        from_state=previous,
        to_state=definition.state,
        reason=reason,
        document_type=document_type,
    )
