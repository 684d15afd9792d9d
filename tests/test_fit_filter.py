"""
Tests for the fit filter agent.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import pytest

from scout.agents.base import AgentContext
from scout.agents.fit_filter import FitFilterAgent, clamp_score
from scout.config import Settings
from scout.types import AdjacentTheme, Candidate, FitType, QueryPlan, ThemeOrder


def _filter(settings: Settings, llm: Any) -> FitFilterAgent:
    return FitFilterAgent(AgentContext(settings=settings, llm=llm))


def _plan() -> QueryPlan:
    return QueryPlan(
        primary_keywords=("trucking",),
        adjacent_themes=(AdjacentTheme("fleet software", ThemeOrder.SECOND, "Fleets need tooling"),),
        search_queries=(),
    )


class TestClampScore:
    """Tests for score clamping."""

    @pytest.mark.parametrize("value,expected", [(None, 5), (0, 1), (-3, 1), (7, 7), (10, 10), (14, 10)])
    def test_clamp(self, value: int | None, expected: int) -> None:
        assert clamp_score(value) == expected


class TestFitFilterAgent:
    """Tests for batched fit scoring."""

    @pytest.mark.asyncio
    async def test_threshold_sort_and_default(
        self,
        make_settings: Callable[..., Settings],
        make_llm: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        llm = make_llm(
            json.dumps(
                {
                    "Weak": {"fit_score": 4, "fit_type": "direct", "reason": "tangential"},
                    "Edge": {"fit_score": 6, "fit_type": "2nd_order", "reason": "enabler"},
                    "truckco": {"fit_score": 9, "fit_type": "direct", "reason": "  core fit "},
                    "Exact": 7,
                }
            )
        )
        candidates = [
            make_candidate("Weak"),
            make_candidate("Edge"),
            make_candidate("Unscored"),
            make_candidate("TruckCo"),
            make_candidate("Exact"),
        ]

        result = await _filter(make_settings(FIT_SCORE_THRESHOLD=5), llm).run(
            "autonomous trucking", candidates=candidates, plan=_plan()
        )

        assert [c.name for c in result.candidates] == ["TruckCo", "Exact", "Edge", "Unscored"]
        by_name = {c.name: c for c in result.candidates}
        assert by_name["Unscored"].fit_score == 5
        assert by_name["Unscored"].fit_type is None
        assert by_name["TruckCo"].fit_reason == "core fit"
        assert by_name["Edge"].fit_type == FitType.SECOND_ORDER
        assert result.dropped == 1
        assert result.scored is True
        assert all(c.fit_score >= 5 for c in result.candidates)

    @pytest.mark.asyncio
    async def test_scores_list_form_and_clamping(
        self,
        make_settings: Callable[..., Settings],
        make_llm: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        llm = make_llm(
            '{"scores": [{"name": "Loud", "fit_score": 15}, {"name": "Quiet", "score": "0"}]}'
        )

        result = await _filter(make_settings(FIT_SCORE_THRESHOLD=1), llm).run(
            "robotics", candidates=[make_candidate("Quiet"), make_candidate("Loud")]
        )

        assert [(c.name, c.fit_score) for c in result.candidates] == [("Loud", 10), ("Quiet", 1)]

    @pytest.mark.asyncio
    async def test_all_below_threshold(
        self,
        settings: Settings,
        make_llm: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        llm = make_llm('{"A": 2, "B": 3}')

        result = await _filter(settings, llm).run("robotics", candidates=[make_candidate("A"), make_candidate("B")])

        assert result.candidates == []
        assert result.dropped == 2

    @pytest.mark.asyncio
    async def test_unparseable_response_passes_everything(
        self,
        settings: Settings,
        make_llm: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        candidates = [make_candidate("A"), make_candidate("B")]

        result = await _filter(settings, make_llm("Sorry, I cannot score these.")).run(
            "robotics", candidates=candidates
        )

        assert result.scored is False
        assert [c.name for c in result.candidates] == ["A", "B"]
        assert all(c.fit_score is None for c in result.candidates)

    @pytest.mark.asyncio
    async def test_null_reason_still_applies_threshold(
        self,
        settings: Settings,
        make_llm: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        llm = make_llm('{"Junk": {"fit_score": 1, "reason": null}, "Good": {"fit_score": 9, "reason": ["core"]}}')

        result = await _filter(settings, llm).run(
            "robotics", candidates=[make_candidate("Junk"), make_candidate("Good")]
        )

        assert result.scored is True
        assert [c.name for c in result.candidates] == ["Good"]
        assert result.dropped == 1

    @pytest.mark.asyncio
    async def test_malformed_entry_falls_back_to_default(
        self,
        settings: Settings,
        make_llm: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        llm = make_llm(
            '{"scores": [{"fit_score": 9}, "garbage", {"name": "Weak", "fit_score": 2}, {"name": "Good", "fit_score": 8}]}'
        )

        result = await _filter(settings, llm).run(
            "robotics",
            candidates=[make_candidate("Weak"), make_candidate("Nameless"), make_candidate("Good")],
        )

        assert result.scored is True
        assert [(c.name, c.fit_score) for c in result.candidates] == [("Good", 8), ("Nameless", 5)]

    @pytest.mark.asyncio
    async def test_no_candidates_skips_model(self, settings: Settings, make_llm: Callable[..., Any]) -> None:
        llm = make_llm()

        result = await _filter(settings, llm).run("robotics", candidates=[])

        assert result.candidates == []
        assert llm.calls == 0

    @pytest.mark.asyncio
    async def test_prompt_contents(
        self,
        settings: Settings,
        make_llm: Callable[..., Any],
        make_candidate: Callable[..., Candidate],
    ) -> None:
        llm = make_llm("{}")
        candidates = [
            make_candidate("Fleetwise", description="x" * 300, discovered_via_theme="fleet software"),
        ]

        await _filter(settings, llm).run("autonomous trucking", candidates=candidates, plan=_plan())

        prompt = llm.prompt(0)
        assert 'THESIS: "autonomous trucking"' in prompt
        assert "- fleet software (2nd): Fleets need tooling" in prompt
        assert "- Fleetwise: " + "x" * 100 + " [via theme: fleet software]" in prompt
        assert "x" * 101 not in prompt
        assert llm.requests[0].model == settings.MODEL_FILTER
