"""Tests for the cached, deduplicating upstream fetcher."""

from __future__ import annotations

import asyncio
from typing import List

import httpx
import pytest

from weather_mcp.cache import InMemoryCache
from weather_mcp.errors import UpstreamError, UpstreamStatusError, UpstreamTimeoutError
from weather_mcp.fetch import UpstreamFetcher, build_url

URL = "https://api.example.com/v1/data?x=1"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_fetcher(handler, clock=None) -> UpstreamFetcher:
    cache = InMemoryCache(default_ttl=60, clock=clock or FakeClock())
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamFetcher(cache, timeout=5, client=client)


# ── build_url ───────────────────────────────────────────────────────────


class TestBuildUrl:
    def test_no_params(self) -> None:
        assert build_url("https://h/p", {}) == "https://h/p"

    def test_lists_are_comma_joined(self) -> None:
        url = build_url("https://h/p", {"current": ["a", "b"], "n": 3})
        assert url == "https://h/p?current=a,b&n=3"

    def test_booleans_lowercase(self) -> None:
        assert build_url("https://h/p", {"flag": True}) == "https://h/p?flag=true"

    def test_order_preserved(self) -> None:
        a = build_url("https://h/p", {"b": 1, "a": 2})
        assert a.endswith("?b=1&a=2")

    def test_values_are_escaped(self) -> None:
        assert build_url("https://h/p", {"name": "New York"}) == "https://h/p?name=New+York"


# ── Caching ─────────────────────────────────────────────────────────────


class TestFetchCaching:
    @pytest.mark.anyio
    async def test_success_is_cached(self) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(200, json={"value": 42})

        fetcher = make_fetcher(handler)
        assert await fetcher.fetch_json(URL) == {"value": 42}
        assert await fetcher.fetch_json(URL) == {"value": 42}
        assert len(calls) == 1
        await fetcher.close()

    @pytest.mark.anyio
    async def test_null_payload_is_cached(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, content=b"null", headers={"content-type": "application/json"})

        fetcher = make_fetcher(handler)
        assert await fetcher.fetch_json(URL) is None
        assert await fetcher.fetch_json(URL) is None
        assert calls == 1
        await fetcher.close()

    @pytest.mark.anyio
    async def test_ttl_expiry_refetches(self) -> None:
        calls = 0
        clock = FakeClock()

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"n": calls})

        fetcher = make_fetcher(handler, clock)
        assert await fetcher.fetch_json(URL, ttl=10) == {"n": 1}
        clock.now = 11
        assert await fetcher.fetch_json(URL, ttl=10) == {"n": 2}

    @pytest.mark.anyio
    async def test_failure_is_not_cached(self) -> None:
        statuses = [503, 200]

        def handler(request: httpx.Request) -> httpx.Response:
            status = statuses.pop(0)
            return httpx.Response(status, json={"ok": status == 200})

        fetcher = make_fetcher(handler)
        with pytest.raises(UpstreamStatusError):
            await fetcher.fetch_json(URL)
        assert await fetcher.fetch_json(URL) == {"ok": True}


# ── Deduplication ───────────────────────────────────────────────────────


class TestFetchDedup:
    @pytest.mark.anyio
    async def test_concurrent_requests_share_one_call(self) -> None:
        calls = 0
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            await release.wait()
            return httpx.Response(200, json={"shared": True})

        fetcher = make_fetcher(handler)
        tasks = [asyncio.create_task(fetcher.fetch_json(URL)) for _ in range(3)]
        for _ in range(50):
            await asyncio.sleep(0)
        assert fetcher.inflight_count == 1

        release.set()
        results = await asyncio.gather(*tasks)
        assert results == [{"shared": True}] * 3
        assert calls == 1
        assert fetcher.inflight_count == 0

    @pytest.mark.anyio
    async def test_failure_propagates_to_every_waiter(self) -> None:
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(500)

        fetcher = make_fetcher(handler)
        tasks = [asyncio.create_task(fetcher.fetch_json(URL)) for _ in range(2)]
        for _ in range(50):
            await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, UpstreamStatusError) for r in results)
        assert fetcher.inflight_count == 0

    @pytest.mark.anyio
    async def test_distinct_urls_are_not_merged(self) -> None:
        seen: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.query.decode())
            return httpx.Response(200, json={})

        fetcher = make_fetcher(handler)
        await asyncio.gather(
            fetcher.fetch_json("https://api.example.com/a?x=1"),
            fetcher.fetch_json("https://api.example.com/a?x=2"),
        )
        assert sorted(seen) == ["x=1", "x=2"]


# ── Error mapping ───────────────────────────────────────────────────────


class TestFetchErrors:
    @pytest.mark.anyio
    async def test_status_error_names_host(self) -> None:
        fetcher = make_fetcher(lambda request: httpx.Response(503))
        with pytest.raises(UpstreamStatusError) as exc_info:
            await fetcher.fetch_json(URL)
        assert str(exc_info.value) == "Upstream api.example.com returned HTTP 503"
        assert exc_info.value.status == 503
        assert exc_info.value.host == "api.example.com"

    @pytest.mark.anyio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        fetcher = make_fetcher(handler)
        with pytest.raises(UpstreamTimeoutError) as exc_info:
            await fetcher.fetch_json(URL, timeout=2.5)
        assert "api.example.com" in str(exc_info.value)
        assert exc_info.value.timeout == 2.5

    @pytest.mark.anyio
    async def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(handler)
        with pytest.raises(UpstreamError, match="Upstream api.example.com request failed"):
            await fetcher.fetch_json(URL)

    @pytest.mark.anyio
    async def test_invalid_json(self) -> None:
        fetcher = make_fetcher(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(UpstreamError, match="not valid JSON"):
            await fetcher.fetch_json(URL)

    @pytest.mark.anyio
    async def test_close_leaves_injected_client_open(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        fetcher = UpstreamFetcher(InMemoryCache(), client=client)
        await fetcher.close()
        assert not client.is_closed
        await client.aclose()
