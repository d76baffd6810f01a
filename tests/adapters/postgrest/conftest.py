"""Shared fixtures for PostgREST adapter tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from freightlink.adapters.http_resilience import ResilientClient
from freightlink.adapters.postgrest import PostgrestDocumentSource
from freightlink.config.http_resilience import ResilienceConfig
from freightlink.config.postgrest import PostgrestConfig

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "https://classifier.example.com/rest/v1/"


def make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=BASE_URL,
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


@pytest.fixture
def postgrest_config() -> PostgrestConfig:
    return PostgrestConfig(
        base_url=BASE_URL,
        api_key="anon-key",
        resilience=ResilienceConfig(name="postgrest-test", base_url=BASE_URL),
    )


@pytest.fixture
def make_source(
    postgrest_config: PostgrestConfig,
) -> Callable[[Callable[[httpx.Request], httpx.Response]], PostgrestDocumentSource]:
    def build(handler: Callable[[httpx.Request], httpx.Response]) -> PostgrestDocumentSource:
        return PostgrestDocumentSource(
            config=postgrest_config,
            client_factory=make_client_factory(handler),
        )

    return build
