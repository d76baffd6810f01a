"""Batch sizing and retry defaults for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import float_from_env, int_from_env

DEFAULT_BATCH_SIZE = 200
DEFAULT_CONCURRENCY = 1
DEFAULT_MAX_PASSES = 2
DEFAULT_ITEM_RETRIES = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 0.2


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    max_passes: int = DEFAULT_MAX_PASSES
    item_retries: int = DEFAULT_ITEM_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS


def get_reconcile_config() -> ReconcileConfig:
    return ReconcileConfig(
        batch_size=int_from_env("FREIGHTLINK_BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
        concurrency=int_from_env("FREIGHTLINK_CONCURRENCY", DEFAULT_CONCURRENCY, minimum=1),
        max_passes=int_from_env("FREIGHTLINK_MAX_PASSES", DEFAULT_MAX_PASSES, minimum=1),
        item_retries=int_from_env("FREIGHTLINK_ITEM_RETRIES", DEFAULT_ITEM_RETRIES),
        retry_backoff_seconds=float_from_env(
            "FREIGHTLINK_RETRY_BACKOFF", DEFAULT_RETRY_BACKOFF_SECONDS
        ),
    )
