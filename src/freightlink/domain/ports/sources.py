"""Ports for reading classified documents from the upstream collaborator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from freightlink.domain.model import ClassifiedDocument


@runtime_checkable
class DocumentSource(Protocol):
    """Read-only access to classified emails and their extracted entities.

    Documents are returned in ascending ``email_id`` order and carry only the
    latest classification of each email.
    """

    def fetch_batch(self, *, after: str | None, limit: int) -> list[ClassifiedDocument]: ...

    def get(self, email_id: str) -> ClassifiedDocument | None: ...
