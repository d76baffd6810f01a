"""Row schemas of the classification and extraction tables exposed over PostgREST."""

from __future__ import annotations

import logging
from datetime import datetime  # noqa: TC003
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, field_validator

log = logging.getLogger(__name__)


class PostgrestRow(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "PostgREST %s: unmodeled columns: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class ClassificationRow(PostgrestRow):
    email_id: str
    document_type: str
    message_id: str | None = None
    classified_at: datetime | None = None

    @field_validator("message_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class EntityRow(PostgrestRow):
    email_id: str
    entity_type: str
    entity_value: str
    confidence: float | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _parse_confidence(cls, value: object) -> object:
        # some extractor versions store confidence as text
        if isinstance(value, str):
            stripped = value.strip()
            return float(stripped) if stripped else None
        return value
