"""Bounded, cancellable batch execution."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from logging import getLogger
from threading import Event
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

log = getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class ItemResult[TItem, TValue]:
    item: TItem
    value: TValue | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BatchRunner:
    """Run one function over the items of a batch on a bounded worker pool.

    A failing item is logged and reported in its ``ItemResult``; it never aborts the
    batch. ``concurrency == 1`` runs items inline on the calling thread.
    """

    concurrency: int = 1
    cancel_event: Event = field(default_factory=Event)

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def run[TItem, TValue](
        self,
        items: Sequence[TItem],
        func: Callable[[TItem], TValue],
        *,
        describe: Callable[[TItem], str] = str,
    ) -> list[ItemResult[TItem, TValue]]:
        if self.concurrency == 1 or len(items) <= 1:
            return [_run_item(item, func, describe) for item in items]
        with ThreadPoolExecutor(
            max_workers=min(self.concurrency, len(items)),
            thread_name_prefix="freightlink",
        ) as executor:
            futures = [executor.submit(_run_item, item, func, describe) for item in items]
            return [future.result() for future in futures]


def _run_item[TItem, TValue](
    item: TItem,
    func: Callable[[TItem], TValue],
    describe: Callable[[TItem], str],
) -> ItemResult[TItem, TValue]:
    try:
        return ItemResult(item=item, value=func(item))
    except Exception as exc:
        log.exception("Failed to process %s", describe(item))
        return ItemResult(item=item, error=exc)


def dedupe_by[T](items: Iterable[T], key: Callable[[T], str], seen: set[str]) -> list[T]:
    """Drop items whose key was already seen; ``seen`` is updated in place."""

    unique: list[T] = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        unique.append(item)
    return unique
