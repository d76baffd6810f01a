"""Normalization and validation of shipment identifiers extracted from emails."""

from __future__ import annotations

import re
from typing import Final

from freightlink.domain.model import IdentifierType

# SCAC codes carriers prepend to their own booking and BL numbers (MAEU263042012).
CARRIER_PREFIXES: Final[tuple[str, ...]] = (
    "MAEU",
    "COSU",
    "HLCU",
    "CMDU",
    "MEDU",
    "ONEY",
    "EGLV",
    "OOLU",
    "YMLU",
    "ZIMU",
)

# Words the extractor sometimes returns in place of an actual booking number.
BOOKING_KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "CONFIRMATION",
        "CANCELLATION",
        "STUFFING",
        "UNKNOWN",
        "NONE",
        "TBD",
        "N/A",
        "NA",
        "NULL",
        "PENDING",
        "DRAFT",
        "AMENDMENT",
        "UPDATE",
        "NOTIFICATION",
        "APPROVAL",
        "REQUEST",
        "BOOKING",
        "SHIPMENT",
    }
)

ENTITY_TYPE_ALIASES: Final[dict[str, IdentifierType]] = {
    "booking_number": IdentifierType.BOOKING_NUMBER,
    "booking_no": IdentifierType.BOOKING_NUMBER,
    "booking": IdentifierType.BOOKING_NUMBER,
    "bl_number": IdentifierType.BL_NUMBER,
    "bill_of_lading": IdentifierType.BL_NUMBER,
    "mbl_number": IdentifierType.BL_NUMBER,
    "container_number": IdentifierType.CONTAINER_NUMBER,
    "container": IdentifierType.CONTAINER_NUMBER,
}

MIN_IDENTIFIER_LENGTH: Final[int] = 4

_CARRIER_PREFIX_RE = re.compile(rf"^(?:{'|'.join(CARRIER_PREFIXES)})(?=\d)")
_IDENTIFIER_CHARS_RE = re.compile(r"^[A-Z0-9\-_/.]+$")
_CONTAINER_RE = re.compile(r"^[A-Z]{4}\d{6,7}$")
_WHITESPACE_RE = re.compile(r"\s+")


def identifier_type_for(entity_type: str) -> IdentifierType | None:
    """Map an extractor entity type onto the identifier it represents, if any."""

    return ENTITY_TYPE_ALIASES.get(entity_type.strip().lower())


def strip_carrier_prefix(value: str) -> str:
    return _CARRIER_PREFIX_RE.sub("", value, count=1)


def is_valid_booking_number(value: str) -> bool:
    if len(value) < MIN_IDENTIFIER_LENGTH:
        return False
    if value in BOOKING_KEYWORDS:
        return False
    if not _IDENTIFIER_CHARS_RE.match(value):
        return False
    return any(char.isdigit() for char in value)


def normalize_identifier(identifier_type: IdentifierType, value: str | None) -> str | None:
    """Return the canonical form of an identifier, or ``None`` when it is unusable."""

    if value is None:
        return None
    cleaned = _WHITESPACE_RE.sub("", value).upper()
    if not cleaned:
        return None

    if identifier_type is IdentifierType.CONTAINER_NUMBER:
        cleaned = cleaned.replace("-", "").replace("/", "").replace(".", "")
        return cleaned if _CONTAINER_RE.match(cleaned) else None

    stripped = strip_carrier_prefix(cleaned)
    if identifier_type is IdentifierType.BOOKING_NUMBER:
        return stripped if is_valid_booking_number(stripped) else None

    if len(stripped) < MIN_IDENTIFIER_LENGTH or not _IDENTIFIER_CHARS_RE.match(stripped):
        return None
    return stripped if any(char.isdigit() for char in stripped) else None


def normalize_confidence(value: float | None) -> float:
    """Extraction confidence as a 0..1 ratio; values above 1 are read as percentages."""

    if value is None:
        return 1.0
    ratio = value / 100.0 if value > 1.0 else value
    return min(max(ratio, 0.0), 1.0)
