from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest
from hishel import AsyncSqliteStorage

from freightlink.adapters.http_resilience import (
    ResilientClient,
    _build_cache_storage,  # type: ignore[reportPrivateUsage]
    build_retry,
)
from freightlink.config.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_build_retry_copies_the_policy() -> None:
    retry = build_retry(RetryPolicy(total=2, backoff_factor=0.1))

    assert retry.total == 2  # noqa: PLR2004
    assert retry.backoff_factor == pytest.approx(0.1)


def test_cache_storage_is_optional() -> None:
    assert _build_cache_storage(None, name="test") is None
    assert _build_cache_storage(CacheConfig(enabled=False), name="test") is None
    memory = _build_cache_storage(CacheConfig(backend="memory"), name="test")
    assert isinstance(memory, AsyncSqliteStorage)


def test_unknown_cache_backend_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported cache backend"):
        _build_cache_storage(CacheConfig(backend="redis"), name="test")  # type: ignore[arg-type]


def test_requests_go_through_the_rate_limiter() -> None:
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["apikey"])
        return httpx.Response(200, json=[])

    async def run() -> list[int]:
        config = ResilienceConfig(
            name="test",
            base_url="https://api.example.com/",
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            default_headers={"apikey": "secret"},
        )
        client = ResilientClient(config)
        await client.aclose()
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url="https://api.example.com/",
            headers={"apikey": "secret"},
            transport=httpx.MockTransport(handler),
        )
        async with client:
            responses = [await client.get("rows") for _ in range(3)]
        return [response.status_code for response in responses]

    assert asyncio.run(run()) == [200, 200, 200]
    assert seen == ["secret", "secret", "secret"]


def test_sqlite_cache_lives_in_the_data_dir(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("FREIGHTLINK_DATA_DIR", str(tmp_path))

    storage = _build_cache_storage(CacheConfig(ttl_seconds=60.0), name="postgrest")

    assert isinstance(storage, AsyncSqliteStorage)
    assert tmp_path.is_dir()

