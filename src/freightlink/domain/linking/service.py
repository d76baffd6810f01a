"""Transactional entry point for resolving one document."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from freightlink.domain.ports.errors import DuplicateBookingError, DuplicateLinkError
from freightlink.domain.retrying import call_with_retries

from .contracts import LinkOutcome, LinkStatus
from .resolve import LinkingResolver

if TYPE_CHECKING:
    from collections.abc import Callable

    from freightlink.domain.model import ClassifiedDocument
    from freightlink.domain.ports import LinkingUnitOfWork

log = getLogger(__name__)

DEFAULT_ITEM_RETRIES = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 0.2


def process_document(
    document: ClassifiedDocument,
    *,
    unit_of_work_factory: Callable[[], LinkingUnitOfWork],
    resolver: LinkingResolver | None = None,
    retries: int = DEFAULT_ITEM_RETRIES,
    backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
) -> LinkOutcome:
    """Resolve ``document``, link it and advance its shipment in one transaction.

    Lost races are retried: a concurrent update of the same shipment is retried with
    backoff, and a booking number created by another worker in the meantime triggers
    one fresh resolution that then links to that shipment.
    """

    effective_resolver = resolver or LinkingResolver()

    def attempt() -> LinkOutcome:
        with unit_of_work_factory() as uow:
            outcome = effective_resolver.resolve(document, uow.repositories)
            uow.commit()
        return outcome

    def attempt_with_recreate() -> LinkOutcome:
        try:
            return attempt()
        except DuplicateBookingError:
            log.info(
                "Shipment for email %s was created concurrently; resolving again",
                document.email_id,
            )
            return attempt()

    try:
        return call_with_retries(
            attempt_with_recreate,
            retries=retries,
            backoff_seconds=backoff_seconds,
            description=f"Linking email {document.email_id}",
        )
    except DuplicateLinkError:
        return LinkOutcome(
            email_id=document.email_id,
            status=LinkStatus.ALREADY_LINKED,
            reason="linked concurrently",
        )
