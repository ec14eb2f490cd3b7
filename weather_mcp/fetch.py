"""Cached, deduplicated JSON fetches against upstream data providers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode

import httpx

from weather_mcp.cache.base import Cache
from weather_mcp.constants import UPSTREAM_TIMEOUT
from weather_mcp.errors import UpstreamError, UpstreamStatusError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

_MISSING = object()

ParamValue = Union[str, int, float, bool, Sequence[str]]


def build_url(base: str, params: Mapping[str, ParamValue]) -> str:
    """Return *base* with *params* encoded as a query string.

    Sequences are comma-joined and booleans lower-cased, matching the
    query conventions of the Open-Meteo APIs.  Insertion order is kept
    so that identical requests produce identical cache keys.
    """
    encoded: Dict[str, str] = {}
    for key, value in params.items():
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            encoded[key] = ",".join(str(v) for v in value)
        else:
            encoded[key] = str(value)
    if not encoded:
        return base
    return f"{base}?{urlencode(encoded, safe=',')}"


class UpstreamFetcher:
    """Timeout-bounded JSON GETs layered on a :class:`Cache`.

    Concurrent requests for the same URL share one physical call through
    an in-flight ledger of futures.  Only successful responses are cached.

    Parameters
    ----------
    cache:
        Backing response cache; keys are full request URLs.
    timeout:
        Default per-request timeout in seconds.
    client:
        Optional pre-built ``httpx.AsyncClient``.  When omitted the
        fetcher owns one and closes it in :meth:`close`.
    """

    def __init__(
        self,
        cache: Cache,
        *,
        timeout: float = UPSTREAM_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._cache = cache
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self._inflight: Dict[str, asyncio.Future[Any]] = {}

    @property
    def cache(self) -> Cache:
        return self._cache

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def fetch_json(
        self,
        url: str,
        *,
        ttl: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Return the decoded JSON body for *url*.

        Raises :class:`UpstreamStatusError` on a non-2xx status,
        :class:`UpstreamTimeoutError` when *timeout* elapses and
        :class:`UpstreamError` for transport or decoding failures.
        """
        cached = await self._cache.get(url, _MISSING)
        if cached is not _MISSING:
            logger.debug("Cache hit: %s", url)
            return cached

        # Lookup and insert happen without a suspension point in between.
        pending = self._inflight.get(url)
        if pending is not None:
            logger.debug("Joining in-flight request: %s", url)
            return await asyncio.shield(pending)

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[url] = future
        try:
            data = await self._get(url, self._timeout if timeout is None else timeout)
            await self._cache.set(url, data, ttl)
        except asyncio.CancelledError:
            if not future.done():
                future.set_exception(
                    UpstreamError("Upstream request was cancelled", url=url, host=_host(url))
                )
                future.exception()
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
                # Mark retrieved so a waiter-less failure is not reported as unhandled.
                future.exception()
            raise
        else:
            if not future.done():
                future.set_result(data)
            return data
        finally:
            if self._inflight.get(url) is future:
                del self._inflight[url]

    async def _get(self, url: str, timeout: float) -> Any:
        host = _host(url)
        logger.debug("Upstream GET %s (timeout=%.1fs)", url, timeout)
        try:
            response = await self._client.get(url, timeout=timeout)
        except httpx.TimeoutException as exc:
            logger.warning("Upstream %s timed out after %.1fs", host, timeout)
            raise UpstreamTimeoutError(url, host, timeout) from exc
        except httpx.HTTPError as exc:
            logger.warning("Upstream %s request failed: %s", host, exc)
            raise UpstreamError(f"Upstream {host} request failed: {exc}", url=url, host=host) from exc

        if not response.is_success:
            logger.warning("Upstream %s returned HTTP %d", host, response.status_code)
            raise UpstreamStatusError(url, host, response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Upstream {host} returned a body that is not valid JSON",
                url=url,
                host=host,
                status=response.status_code,
            ) from exc

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()


def _host(url: str) -> str:
    try:
        return httpx.URL(url).host or url
    except httpx.InvalidURL:
        return url
