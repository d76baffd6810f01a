"""Async HTTP client with retries, rate limiting and optional response caching."""

from __future__ import annotations

from logging import getLogger
from time import perf_counter
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from freightlink.config import get_storage_config

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._client import UseClientDefault
    from httpx._types import HeaderTypes, QueryParamTypes, TimeoutTypes, URLTypes

    from freightlink.config.http_resilience import CacheConfig, ResilienceConfig, RetryPolicy

log = getLogger(__name__)

# The document sources only read.
RETRYABLE_METHODS = ("GET", "HEAD")


class RequestOptions(TypedDict, total=False):
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    timeout: TimeoutTypes | UseClientDefault


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    transport: httpx.AsyncBaseTransport


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=RETRYABLE_METHODS,
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


class ResilientClient:
    """``httpx.AsyncClient`` wrapper shared by the remote document sources.

    Every request passes the retry transport and, when configured, the rate limiter.
    Error statuses that survive the retries are returned to the caller as is.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

        client_kwargs: AsyncClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(retry=build_retry(config.retry)),
        }
        if config.base_url is not None:
            client_kwargs["base_url"] = config.base_url
        if config.default_headers:
            client_kwargs["headers"] = dict(config.default_headers)

        storage = _build_cache_storage(config.cache, name=config.name)
        if storage is not None:
            self._client = AsyncCacheClient(**client_kwargs, storage=storage)
        else:
            self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        started = perf_counter()
        if self._limiter is None:
            response = await self._client.get(url, **kwargs)
        else:
            async with self._limiter:
                response = await self._client.get(url, **kwargs)
        log.debug(
            "%s GET %s -> %s in %.3fs",
            self.config.name,
            url,
            response.status_code,
            perf_counter() - started,
        )
        return response


def _build_cache_storage(
    config: CacheConfig | None,
    *,
    name: str,
) -> AsyncSqliteStorage | None:
    if config is None or not config.enabled:
        return None

    if config.backend == "sqlite":
        database_path = config.sqlite_path or str(get_storage_config().http_cache_path(name))
    elif config.backend == "memory":
        database_path = ":memory:"
    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")
    return AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.ttl_seconds,
        refresh_ttl_on_access=False,
    )
