"""Errors raised by operator-facing linking actions."""

from __future__ import annotations


class LinkingError(RuntimeError):
    """Base class for linking actions that cannot be carried out."""


class CandidateNotFoundError(LinkingError, LookupError):
    """No link candidate exists with the given id."""


class ShipmentNotFoundError(LinkingError, LookupError):
    """No shipment exists with the given id."""


class LinkNotFoundError(LinkingError, LookupError):
    """The email is not linked to any shipment."""


class CandidateStateError(LinkingError, ValueError):
    """The candidate is already closed or lacks the data needed for the action."""
