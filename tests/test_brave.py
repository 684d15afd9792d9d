"""
Tests for the Brave web search client and web candidate source.
"""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from scout.sources.brave import (
    BraveSearchClient,
    BraveWebSource,
    SearchResult,
    extract_company_name,
    signal_queries,
)
from scout.types import ProviderKind


def _client(handler: Callable[[httpx.Request], httpx.Response], api_key: str | None = "brave-key") -> BraveSearchClient:
    return BraveSearchClient(api_key, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _results(*items: tuple[str, str, str]) -> dict:
    return {"web": {"results": [{"title": t, "url": u, "description": d} for t, u, d in items]}}


class TestExtractCompanyName:
    """Tests for company-name extraction from titles."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Acme Robotics, Inc. | Home", "Acme Robotics"),
            ("Haulr - Autonomous freight for the middle mile", "Haulr"),
            ("Plexo: the data layer for fleets", "Plexo"),
            ("TruckCo — Self-driving trucks", "TruckCo"),
            ("Fleetwise LLC", "Fleetwise"),
            ("Ox", None),
            ("", None),
            ("A" * 60 + " | Home", None),
        ],
    )
    def test_extract(self, title: str, expected: str | None) -> None:
        assert extract_company_name(title) == expected


class TestBraveSearchClient:
    """Tests for the HTTP client."""

    @pytest.mark.asyncio
    async def test_search_params_and_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_results(("Haulr - Freight", "https://haulr.com", "Freight AI")))

        client = _client(handler)
        results = await client.search("autonomous trucking", count=50, freshness="pm")

        assert results == [SearchResult(title="Haulr - Freight", url="https://haulr.com", description="Freight AI")]
        params = seen[0].url.params
        assert params["q"] == "autonomous trucking"
        assert params["count"] == "20"
        assert params["freshness"] == "pm"
        assert seen[0].headers["X-Subscription-Token"] == "brave-key"

    @pytest.mark.asyncio
    async def test_freshness_can_be_omitted(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_results())

        await _client(handler).search("patents", count=0, freshness=None)

        assert "freshness" not in seen[0].url.params
        assert seen[0].url.params["count"] == "1"

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        client = _client(lambda r: httpx.Response(200, json=_results()), api_key=None)

        assert client.available is False
        assert await client.search("anything") == []

    @pytest.mark.asyncio
    async def test_failures_are_empty(self) -> None:
        def raising(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down")

        assert await _client(lambda r: httpx.Response(500)).search("x") == []
        assert await _client(lambda r: httpx.Response(200, content=b"nope")).search("x") == []
        assert await _client(lambda r: httpx.Response(200, json={"web": None})).search("x") == []
        assert await _client(raising).search("x") == []

    @pytest.mark.asyncio
    async def test_results_without_url_are_skipped(self) -> None:
        body = {"web": {"results": [{"title": "No link"}, {"title": "Ok", "url": "https://ok.io"}, "junk"]}}
        results = await _client(lambda r: httpx.Response(200, json=body)).search("x")

        assert [r.url for r in results] == ["https://ok.io"]


class TestBraveWebSource:
    """Tests for turning web hits into candidates."""

    @pytest.mark.asyncio
    async def test_candidates_need_enrichment(self) -> None:
        body = _results(
            ("Haulr - Autonomous freight", "https://www.haulr.com/about", "Haulr automates middle-mile freight"),
            ("Top 10 trucking startups", "https://techcrunch.com/2024/trucking", "A roundup"),
            ("TruckCo raises seed | LinkedIn", "https://www.linkedin.com/company/truckco", "Post"),
        )
        source = BraveWebSource(_client(lambda r: httpx.Response(200, json=body)))

        candidates = await source.search("autonomous trucking")

        assert source.name == "web"
        assert [c.name for c in candidates] == ["Haulr"]
        haulr = candidates[0]
        assert haulr.source == ProviderKind.WEB
        assert haulr.website is None
        assert haulr.needs_enrichment is True
        assert haulr.verified is False
        assert haulr.discovery_query == "autonomous trucking"
        assert haulr.citations[0].type == "web"
        assert haulr.citations[0].url == "https://www.haulr.com/about"

    @pytest.mark.asyncio
    async def test_search_never_raises(self) -> None:
        def raising(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("unexpected")

        source = BraveWebSource(_client(raising))

        assert await source.search("anything") == []


class TestSignalQueries:
    """Tests for tiered startup-signal query expansion."""

    def test_zero_templates_sends_raw_query(self) -> None:
        assert signal_queries("  warehouse robotics ", 0) == [(2, "warehouse robotics")]

    def test_tier_one_first_and_bounded(self) -> None:
        planned = signal_queries("warehouse robotics", 3)

        assert len(planned) == 3
        assert planned[0] == (1, "site:ycombinator.com/companies warehouse robotics")
        assert all(tier == 1 for tier, _ in planned)

    def test_all_templates(self) -> None:
        tiers = [tier for tier, _ in signal_queries("robotics", 10)]

        assert tiers == [1] * 5 + [2] * 5


class TestBraveWebSourceSignalSearch:
    """Tests for tiered web discovery."""

    @pytest.mark.asyncio
    async def test_profiles_kept_and_domains_deduped(self) -> None:
        queries: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            q = request.url.params["q"]
            queries.append(q)
            if q.startswith("site:ycombinator.com/companies"):
                return httpx.Response(
                    200,
                    json=_results(
                        ("Haulr: Autonomous freight | Y Combinator", "https://www.ycombinator.com/companies/haulr", ""),
                        ("Logistics Startups | Y Combinator", "https://www.ycombinator.com/companies/industry/logistics", ""),
                    ),
                )
            if q.startswith('"Y Combinator"'):
                return httpx.Response(
                    200,
                    json=_results(
                        ("Plexo - Fleet data", "https://plexo.io", "Fleet data layer"),
                        ("Plexo Blog - Updates", "https://www.plexo.io/blog", ""),
                    ),
                )
            return httpx.Response(
                200, json=_results(("Show HN: Rigly", "https://news.ycombinator.com/item?id=1", ""))
            )

        source = BraveWebSource(_client(handler), signal_templates=3)

        candidates = await source.search("autonomous trucking", limit=10)

        assert len(queries) == 3
        assert [c.name for c in candidates] == ["Haulr", "Plexo"]
        assert [c.search_tier for c in candidates] == [1, 1]
        assert candidates[0].citations[0].url == "https://www.ycombinator.com/companies/haulr"
        assert all(c.needs_enrichment for c in candidates)
        assert candidates[1].discovery_query == '"Y Combinator" "autonomous trucking" startup'

    @pytest.mark.asyncio
    async def test_tier_two_skipped_once_limit_reached(self) -> None:
        queries: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            queries.append(request.url.params["q"])
            n = len(queries)
            return httpx.Response(
                200,
                json=_results(
                    (f"Co{n}a - x", f"https://co{n}a.com", ""),
                    (f"Co{n}b - x", f"https://co{n}b.com", ""),
                ),
            )

        source = BraveWebSource(_client(handler), signal_templates=7)

        candidates = await source.search("robotics", limit=2)

        assert len(queries) == 5
        assert [c.name for c in candidates] == ["Co1a", "Co1b"]
        assert queries[0].endswith("robotics")
        assert "robotics startup funding seed round" not in queries

    @pytest.mark.asyncio
    async def test_tier_two_fills_until_limit(self) -> None:
        queries: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            q = request.url.params["q"]
            queries.append(q)
            if q == "robotics startup funding seed round":
                return httpx.Response(200, json=_results(("Rigly - Robot rigs", "https://rigly.ai", "")))
            return httpx.Response(200, json=_results())

        source = BraveWebSource(_client(handler), signal_templates=7)

        candidates = await source.search("robotics", limit=1)

        assert len(queries) == 6
        assert [(c.name, c.search_tier) for c in candidates] == [("Rigly", 2)]
