"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class WorkflowState(StrEnum):
    """Ordered progression label of a shipment; ranks live in ``domain.workflow``."""

    SI_DRAFT_RECEIVED = "si_draft_received"
    BOOKING_CONFIRMATION_RECEIVED = "booking_confirmation_received"
    COMMERCIAL_INVOICE_RECEIVED = "commercial_invoice_received"
    SI_CONFIRMED = "si_confirmed"
    VGM_CONFIRMED = "vgm_confirmed"
    CONTAINER_GATED_IN = "container_gated_in"
    SOB_RECEIVED = "sob_received"
    VESSEL_DEPARTED = "vessel_departed"
    ISF_FILED = "isf_filed"
    BL_RECEIVED = "bl_received"
    INVOICE_SENT = "invoice_sent"
    ARRIVAL_NOTICE_RECEIVED = "arrival_notice_received"
    CUSTOMS_CLEARED = "customs_cleared"
    DELIVERY_ORDER_RECEIVED = "delivery_order_received"
    CARGO_RELEASED = "cargo_released"
    DELIVERED = "delivered"
    POD_RECEIVED = "pod_received"
    CANCELLED = "cancelled"


class WorkflowPhase(StrEnum):
    PRE_SHIPMENT = "pre_shipment"
    IN_TRANSIT = "in_transit"
    ARRIVAL = "arrival"
    DELIVERY = "delivery"
    CLOSED = "closed"


class ShipmentStatus(StrEnum):
    BOOKED = "booked"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class IdentifierType(StrEnum):
    """Entity types that identify a shipment, most specific first."""

    BOOKING_NUMBER = "booking_number"
    BL_NUMBER = "bl_number"
    CONTAINER_NUMBER = "container_number"


class LinkMethod(StrEnum):
    BOOKING_NUMBER = "booking_number"
    BL_NUMBER = "bl_number"
    CONTAINER_NUMBER = "container_number"
    MANUAL = "manual"

    @classmethod
    def for_identifier(cls, identifier_type: IdentifierType) -> LinkMethod:
        return cls(identifier_type.value)


class CandidateStatus(StrEnum):
    PENDING = "pending"
    AMBIGUOUS = "ambiguous"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class TransitionReason(StrEnum):
    """Why a shipment's workflow state changed."""

    CREATE = "create"
    ADVANCE = "advance"
    CANCEL = "cancel"
    REDERIVE = "rederive"
    CORRECTION = "correction"
