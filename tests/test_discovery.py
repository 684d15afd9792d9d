"""
Tests for multi-source discovery.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from scout.agents.discovery import DiscoveryEngine, exclusion_reason, plan_queries
from scout.types import (
    AdjacentTheme,
    Candidate,
    DiscoverySource,
    FundingStage,
    ProviderKind,
    QueryPlan,
    ThemeOrder,
)


def _plan(
    keywords: tuple[str, ...] = ("autonomous", "trucking"),
    queries: tuple[str, ...] = (),
    themes: tuple[str, ...] = (),
) -> QueryPlan:
    return QueryPlan(
        primary_keywords=keywords,
        adjacent_themes=tuple(AdjacentTheme(t, ThemeOrder.SECOND) for t in themes),
        search_queries=queries,
    )


class TestPlanQueries:
    """Tests for turning a plan into adapter calls."""

    def test_primary_then_adjacent(self) -> None:
        queries = plan_queries(_plan(queries=("self-driving freight startups",), themes=("fleet software",)))

        assert [(q.text, q.discovery_source) for q in queries] == [
            ("autonomous", DiscoverySource.PRIMARY),
            ("trucking", DiscoverySource.PRIMARY),
            ("self-driving freight startups", DiscoverySource.PRIMARY),
            ("fleet software", DiscoverySource.ADJACENT),
        ]
        assert queries[-1].theme == "fleet software"

    def test_each_list_is_truncated(self) -> None:
        plan = _plan(keywords=("a1", "a2", "a3", "a4"), themes=("t1", "t2", "t3", "t4"))

        queries = plan_queries(plan, per_list=2)

        assert [q.text for q in queries] == ["a1", "a2", "t1", "t2"]

    def test_blank_entries_dropped(self) -> None:
        assert [q.text for q in plan_queries(_plan(keywords=("robots", "  ")))] == ["robots"]


class TestExclusionReason:
    """Tests for stage and status exclusion."""

    def test_reasons(self, make_candidate: Callable[..., Candidate]) -> None:
        assert exclusion_reason(make_candidate("A", last_funding_type="seed")) is None
        assert exclusion_reason(make_candidate("B", last_funding_type="series_c")) == "late_stage"
        assert exclusion_reason(make_candidate("C", last_funding_type="Post-IPO Equity")) == "late_stage"
        assert exclusion_reason(make_candidate("D", last_funding_type="seed", operating_status="closed")) == "inactive"
        assert exclusion_reason(make_candidate("E")) is None


class TestDiscoveryEngine:
    """Tests for the discovery fold."""

    @pytest.mark.asyncio
    async def test_stage_filtering(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        source = make_source(
            "crunchbase",
            [
                make_candidate("TruckCo", last_funding_type="seed", operating_status="active"),
                make_candidate("BigFreight Inc", last_funding_type="series_c", operating_status="active"),
                make_candidate("DefunctCo", last_funding_type="seed", operating_status="closed"),
            ],
        )
        engine = DiscoveryEngine([source])

        result = await engine.discover(_plan(keywords=("trucking",)))

        assert [c.name for c in result.candidates] == ["TruckCo"]
        assert result.candidates[0].funding_stage == FundingStage.EARLY
        assert result.excluded == {"late_stage": 1, "inactive": 1}
        assert result.calls == 1

    @pytest.mark.asyncio
    async def test_dedup_across_sources_and_queries(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        crunchbase = make_source(
            "crunchbase",
            {
                "autonomous": [make_candidate("TruckCo", description="from crunchbase")],
                "trucking": [make_candidate("truckco ")],
            },
        )
        web = make_source(
            "web",
            [make_candidate("TRUCKCO", source=ProviderKind.WEB, needs_enrichment=True), make_candidate("Haulr")],
        )
        engine = DiscoveryEngine([crunchbase, web])

        result = await engine.discover(_plan())

        names = [c.name for c in result.candidates]
        assert names == ["TruckCo", "Haulr"]
        assert result.candidates[0].description == "from crunchbase"
        assert result.duplicates == 4
        assert len({c.key for c in result.candidates}) == len(result.candidates)

    @pytest.mark.asyncio
    async def test_first_seen_name_blocks_later_copies_even_when_excluded(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        source = make_source(
            "crunchbase",
            [
                make_candidate("Acme", last_funding_type="series_b"),
                make_candidate("acme", last_funding_type="seed"),
            ],
        )

        result = await DiscoveryEngine([source]).discover(_plan(keywords=("robots",)))

        assert result.candidates == []
        assert result.excluded == {"late_stage": 1}
        assert result.duplicates == 1

    @pytest.mark.asyncio
    async def test_provenance_and_stats(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        source = make_source(
            "crunchbase",
            {
                "trucking": [make_candidate("TruckCo")],
                "fleet software": [make_candidate("Fleetwise"), make_candidate("Routely")],
            },
        )

        result = await DiscoveryEngine([source]).discover(
            _plan(keywords=("trucking",), themes=("fleet software",))
        )

        by_name = {c.name: c for c in result.candidates}
        assert by_name["TruckCo"].discovery_source == DiscoverySource.PRIMARY
        assert by_name["TruckCo"].discovered_via_theme is None
        assert by_name["Fleetwise"].discovery_source == DiscoverySource.ADJACENT
        assert by_name["Fleetwise"].discovered_via_theme == "fleet software"
        assert by_name["Routely"].discovery_query == "fleet software"
        assert result.stats.direct_thesis == 1
        assert result.stats.adjacent_themes == 2

    @pytest.mark.asyncio
    async def test_name_length_rule(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        source = make_source(
            "crunchbase",
            [make_candidate("X"), make_candidate("  "), make_candidate("N" * 100), make_candidate("  Ok  ")],
        )

        result = await DiscoveryEngine([source]).discover(_plan(keywords=("robots",)))

        assert [c.name for c in result.candidates] == ["Ok"]

    @pytest.mark.asyncio
    async def test_unavailable_and_broken_sources(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        offline = make_source("crunchbase", [make_candidate("Ghost")], available=False)
        broken = make_source("web", error=RuntimeError("adapter bug"))
        working = make_source("other", [make_candidate("TruckCo")])
        engine = DiscoveryEngine([offline, broken, working])

        result = await engine.discover(_plan(keywords=("trucking",)))

        assert [s.name for s in engine.available_sources] == ["web", "other"]
        assert offline.queries == []
        assert broken.queries == ["trucking"]
        assert [c.name for c in result.candidates] == ["TruckCo"]

    @pytest.mark.asyncio
    async def test_results_per_query_cap(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        source = make_source("crunchbase", [make_candidate(f"Company {i}") for i in range(20)])

        result = await DiscoveryEngine([source], results_per_query=4).discover(_plan(keywords=("robots",)))

        assert len(result.candidates) == 4

    @pytest.mark.asyncio
    async def test_fold_order_is_deterministic(
        self,
        make_source: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        def build() -> DiscoveryEngine:
            return DiscoveryEngine(
                [
                    make_source("crunchbase", {"trucking": [make_candidate("Beta"), make_candidate("Alpha")]}),
                    make_source("web", {"trucking": [make_candidate("Alpha", description="web copy"), make_candidate("Gamma")]}),
                ]
            )

        first = await build().discover(_plan(keywords=("trucking",)))
        second = await build().discover(_plan(keywords=("trucking",)))

        assert [c.name for c in first.candidates] == ["Beta", "Alpha", "Gamma"]
        assert [c.to_dict() for c in first.candidates] == [c.to_dict() for c in second.candidates]
        assert first.candidates[1].description == "Alpha builds software"
