"""PostgREST adapter for the classification and extraction collaborator."""

from __future__ import annotations

from .client import PostgrestDocumentSource
from .schema import ClassificationRow, EntityRow

__all__ = [
    "ClassificationRow",
    "EntityRow",
    "PostgrestDocumentSource",
]
