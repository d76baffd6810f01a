"""PostgREST (Supabase) document source configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import float_from_env, int_from_env, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

POSTGREST_TIMEOUT_SECONDS = 20.0
DEFAULT_CLASSIFICATION_TABLE = "email_classifications"
DEFAULT_ENTITY_TABLE = "entity_extractions"
# Supabase caps responses at 1000 rows by default (db-max-rows).
DEFAULT_ENTITY_PAGE_SIZE = 1000


@dataclass(frozen=True)
class PostgrestConfig:
    """Holds the REST endpoint and credentials of the classification store."""

    base_url: str
    api_key: str
    resilience: ResilienceConfig
    classification_table: str = DEFAULT_CLASSIFICATION_TABLE
    entity_table: str = DEFAULT_ENTITY_TABLE
    entity_page_size: int = DEFAULT_ENTITY_PAGE_SIZE


def get_postgrest_config(*, resilience: ResilienceConfig | None = None) -> PostgrestConfig:
    values = require_env_vars(("FREIGHTLINK_POSTGREST_URL", "FREIGHTLINK_POSTGREST_KEY"))
    base_url = values["FREIGHTLINK_POSTGREST_URL"].rstrip("/") + "/"
    api_key = values["FREIGHTLINK_POSTGREST_KEY"]
    calls_per_second = int_from_env("FREIGHTLINK_POSTGREST_RATE", 10, minimum=1)
    cache_ttl = float_from_env("FREIGHTLINK_POSTGREST_CACHE_TTL", 0.0)
    return PostgrestConfig(
        base_url=base_url,
        api_key=api_key,
        resilience=resilience
        or ResilienceConfig(
            name="postgrest",
            base_url=base_url,
            timeout_seconds=POSTGREST_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=calls_per_second, per_seconds=1.0),
            cache=CacheConfig(ttl_seconds=cache_ttl) if cache_ttl > 0 else None,
            default_headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
        ),
    )
