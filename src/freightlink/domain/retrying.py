"""Bounded retries with exponential backoff for storage operations."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

from freightlink.domain.ports.errors import RETRYABLE_ERRORS

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


def call_with_retries[T](
    func: Callable[[], T],
    *,
    retries: int,
    backoff_seconds: float,
    retry_on: tuple[type[Exception], ...] = RETRYABLE_ERRORS,
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func``, retrying up to ``retries`` times on the given errors."""

    attempt = 0
    while True:
        try:
            return func()
        except retry_on as exc:
            if attempt >= retries:
                raise
            attempt += 1
            delay = backoff_seconds * (2 ** (attempt - 1))
            log.warning(
                "%s failed (%s); retry %s/%s in %.2fs",
                description,
                exc,
                attempt,
                retries,
                delay,
            )
            if delay > 0:
                sleep(delay)
