"""Linking of classified documents to shipments.

Flow for one document:
1) normalize and rank its identifiers (booking > BL > container)
2) look each identifier up in the shipment registry
3) link to the first identifier that names exactly one shipment, or
4) create a shipment for a booking confirmation nobody knows yet, or
5) queue pending/ambiguous link candidates for later passes and review
"""

from __future__ import annotations

from .candidates import confirm_candidate, list_candidates, reclassify, reject_candidate
from .contracts import Identifier, IdentifierMatch, LinkOutcome, LinkStatus
from .errors import (
    CandidateNotFoundError,
    CandidateStateError,
    LinkingError,
    LinkNotFoundError,
    ShipmentNotFoundError,
)
from .normalize import (
    identifier_type_for,
    is_valid_booking_number,
    normalize_confidence,
    normalize_identifier,
)
from .resolve import (
    IDENTIFIER_RANK,
    IDENTIFIER_WEIGHTS,
    SHIPMENT_CREATING_TYPES,
    LinkingResolver,
    collect_identifiers,
)
from .service import process_document

__all__ = [
    "IDENTIFIER_RANK",
    "IDENTIFIER_WEIGHTS",
    "SHIPMENT_CREATING_TYPES",
    "CandidateNotFoundError",
    "CandidateStateError",
    "Identifier",
    "IdentifierMatch",
    "LinkNotFoundError",
    "LinkOutcome",
    "LinkStatus",
    "LinkingError",
    "LinkingResolver",
    "ShipmentNotFoundError",
    "collect_identifiers",
    "confirm_candidate",
    "identifier_type_for",
    "is_valid_booking_number",
    "list_candidates",
    "normalize_confidence",
    "normalize_identifier",
    "process_document",
    "reclassify",
    "reject_candidate",
]
