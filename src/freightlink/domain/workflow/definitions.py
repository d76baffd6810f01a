"""The versioned workflow table: state ranks and the document types that reach them.

This module is the only place that states are ranked or document types are mapped to
states. Everything that resolves or reconciles workflow state reads from a
``WorkflowDefinition``, by default ``DEFAULT_WORKFLOW``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from freightlink.domain.model.enums import ShipmentStatus, WorkflowPhase, WorkflowState

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

WORKFLOW_TABLE_VERSION: Final[int] = 1


@dataclass(frozen=True, slots=True)
class StateDefinition:
    state: WorkflowState
    order: int
    phase: WorkflowPhase
    status: ShipmentStatus
    terminal: bool = False


def normalize_document_type(document_type: str) -> str:
    return document_type.strip().lower().replace(" ", "_").replace("-", "_")


@dataclass(frozen=True, slots=True)
class WorkflowDefinition:
    """Validated state table plus the ``document_type -> state`` mapping."""

    version: int
    states: tuple[StateDefinition, ...]
    document_types: Mapping[str, WorkflowState]
    initial_state: WorkflowState
    _by_state: Mapping[WorkflowState, StateDefinition] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        by_state: dict[WorkflowState, StateDefinition] = {}
        orders: set[int] = set()
        for definition in self.states:
            if definition.state in by_state:
                raise ValueError(f"Duplicate workflow state {definition.state}")
            if definition.order in orders:
                raise ValueError(f"Duplicate workflow order {definition.order}")
            by_state[definition.state] = definition
            orders.add(definition.order)

        terminals = [definition for definition in self.states if definition.terminal]
        if len(terminals) != 1:
            raise ValueError("Workflow must define exactly one terminal state")
        if self.initial_state not in by_state:
            raise ValueError(f"Initial state {self.initial_state} is not defined")
        if by_state[self.initial_state].terminal:
            raise ValueError("Initial state cannot be terminal")

        mapping: dict[str, WorkflowState] = {}
        for document_type, state in self.document_types.items():
            if state not in by_state:
                raise ValueError(f"Document type {document_type!r} maps to unknown state {state}")
            mapping[normalize_document_type(document_type)] = state

        object.__setattr__(self, "_by_state", MappingProxyType(by_state))
        object.__setattr__(self, "document_types", MappingProxyType(mapping))

    @property
    def terminal(self) -> StateDefinition:
        return next(definition for definition in self.states if definition.terminal)

    @property
    def initial(self) -> StateDefinition:
        return self._by_state[self.initial_state]

    def definition_for(self, state: WorkflowState) -> StateDefinition:
        return self._by_state[state]

    def order_of(self, state: WorkflowState) -> int:
        return self._by_state[state].order

    def candidate_for(self, document_type: str) -> StateDefinition | None:
        """Return the state a document type moves a shipment to, if it is mapped."""

        state = self.document_types.get(normalize_document_type(document_type))
        if state is None:
            return None
        return self._by_state[state]

    def is_mapped(self, document_type: str) -> bool:
        return normalize_document_type(document_type) in self.document_types

    def ordered(self) -> tuple[StateDefinition, ...]:
        return tuple(sorted(self.states, key=lambda definition: definition.order))


def _build(
    rows: Iterable[tuple[WorkflowState, int, WorkflowPhase, ShipmentStatus, tuple[str, ...]]],
) -> WorkflowDefinition:
    states: list[StateDefinition] = []
    document_types: dict[str, WorkflowState] = {}
    for state, order, phase, status, types in rows:
        states.append(
            StateDefinition(
                state=state,
                order=order,
                phase=phase,
                status=status,
                terminal=state is WorkflowState.CANCELLED,
            )
        )
        for document_type in types:
            document_types[document_type] = state
    return WorkflowDefinition(
        version=WORKFLOW_TABLE_VERSION,
        states=tuple(states),
        document_types=document_types,
        initial_state=WorkflowState.BOOKING_CONFIRMATION_RECEIVED,
    )


_S = WorkflowState
_P = WorkflowPhase
_ST = ShipmentStatus

DEFAULT_WORKFLOW: Final[WorkflowDefinition] = _build(
    (
        (_S.SI_DRAFT_RECEIVED, 5, _P.PRE_SHIPMENT, _ST.BOOKED, ("si_draft",)),
        (
            _S.BOOKING_CONFIRMATION_RECEIVED,
            10,
            _P.PRE_SHIPMENT,
            _ST.BOOKED,
            ("booking_confirmation", "booking_amendment"),
        ),
        (
            _S.COMMERCIAL_INVOICE_RECEIVED,
            15,
            _P.PRE_SHIPMENT,
            _ST.BOOKED,
            ("commercial_invoice", "packing_list"),
        ),
        (
            _S.SI_CONFIRMED,
            20,
            _P.PRE_SHIPMENT,
            _ST.BOOKED,
            ("shipping_instruction", "si_submission", "si_confirmation"),
        ),
        (
            _S.VGM_CONFIRMED,
            25,
            _P.PRE_SHIPMENT,
            _ST.BOOKED,
            ("vgm_submission", "vgm_confirmation"),
        ),
        (_S.CONTAINER_GATED_IN, 30, _P.PRE_SHIPMENT, _ST.BOOKED, ("gate_in_confirmation",)),
        (_S.SOB_RECEIVED, 35, _P.IN_TRANSIT, _ST.IN_TRANSIT, ("sob_confirmation",)),
        (
            _S.VESSEL_DEPARTED,
            40,
            _P.IN_TRANSIT,
            _ST.IN_TRANSIT,
            ("departure_notice", "sailing_confirmation"),
        ),
        (
            _S.ISF_FILED,
            45,
            _P.IN_TRANSIT,
            _ST.IN_TRANSIT,
            ("isf_submission", "isf_confirmation"),
        ),
        (
            _S.BL_RECEIVED,
            50,
            _P.IN_TRANSIT,
            _ST.IN_TRANSIT,
            ("bill_of_lading", "mbl_draft", "house_bl", "hbl_draft"),
        ),
        (
            _S.INVOICE_SENT,
            55,
            _P.IN_TRANSIT,
            _ST.IN_TRANSIT,
            ("freight_invoice", "invoice"),
        ),
        (
            _S.ARRIVAL_NOTICE_RECEIVED,
            60,
            _P.ARRIVAL,
            _ST.IN_TRANSIT,
            ("arrival_notice", "shipment_notice"),
        ),
        (
            _S.CUSTOMS_CLEARED,
            70,
            _P.ARRIVAL,
            _ST.IN_TRANSIT,
            ("customs_clearance", "customs_document", "duty_invoice", "entry_summary"),
        ),
        (_S.DELIVERY_ORDER_RECEIVED, 80, _P.DELIVERY, _ST.IN_TRANSIT, ("delivery_order",)),
        (
            _S.CARGO_RELEASED,
            85,
            _P.DELIVERY,
            _ST.IN_TRANSIT,
            ("container_release", "freight_release"),
        ),
        (_S.DELIVERED, 90, _P.DELIVERY, _ST.DELIVERED, ("delivery_confirmation",)),
        (_S.POD_RECEIVED, 95, _P.DELIVERY, _ST.DELIVERED, ("proof_of_delivery", "pod")),
        (_S.CANCELLED, 999, _P.CLOSED, _ST.CANCELLED, ("booking_cancellation",)),
    )
)
