"""
Query Planner Agent.

Expands a thesis into a structured QueryPlan: primary keywords, adjacent
themes classified by causal order, industry categories, concrete search
queries, public comparables and a summary. This is the one stage with no
soft-fail path: every later stage consumes its output.
"""

from __future__ import annotations

from typing import Any

from scout.agents.base import Agent, AgentContext
from scout.agents.schemas import QueryPlanPayload
from scout.exceptions import StructuredOutputError
from scout.llm.parsing import ParseFailure, parse_structured
from scout.types import AdjacentTheme, QueryPlan

PLANNER_SYSTEM = "You are a seed-stage investment analyst who turns theses into precise company searches."

PLANNER_PROMPT = """Given an investment thesis, plan a search for relevant early-stage startups.

Think about:
- Direct keywords from the thesis
- Second-order enablers: what must exist for this thesis to succeed?
- Third-order beneficiaries: who wins downstream if it does?
- Picks and shovels: infrastructure and tooling providers
- Parallel applications of the same underlying technology

Return JSON only:
{{
  "primary_keywords": ["keyword1", "keyword2"],
  "adjacent_themes": [
    {{"theme": "theme name", "order": "2nd|3rd|picks_shovels|parallel", "rationale": "one sentence"}}
  ],
  "industry_categories": ["category1"],
  "search_queries": ["query1", "query2"],
  "public_comps": ["TICKER1", "TICKER2"],
  "thesis_summary": "One paragraph summary of the thesis and what makes it compelling"
}}

Give 3-5 primary keywords, 5-8 adjacent themes, 5-8 search queries and 3-5 public tickers.

INVESTMENT THESIS: "{thesis}"
"""


class QueryPlannerAgent(Agent):
    """Produces the QueryPlan for a run with a single model call."""

    def __init__(self, context: AgentContext) -> None:
        super().__init__(context)

    @property
    def name(self) -> str:
        return "query_planner"

    @property
    def role(self) -> str:
        return "Expand a thesis into keywords, adjacent themes and search queries"

    async def run(self, thesis: str, **kwargs: Any) -> QueryPlan:
        """Plan the discovery searches for a thesis.

        Args:
            thesis: The investment thesis.

        Returns:
            An immutable QueryPlan.

        Raises:
            StructuredOutputError: If the response holds no valid plan.
        """
        self.log_info("Planning searches", thesis=thesis[:80])

        response = await self.ask(
            PLANNER_SYSTEM,
            PLANNER_PROMPT.format(thesis=thesis),
            model=self.settings.MODEL_PLANNER,
            max_tokens=2048,
        )

        result = parse_structured(response.content, QueryPlanPayload)
        if isinstance(result, ParseFailure):
            self.log_error("Planner returned no usable plan", reason=result.reason)
            raise StructuredOutputError(
                "Failed to parse keyword response",
                context={"stage": "planning", "reason": result.reason},
            )

        plan = self._to_plan(result.value)
        self.log_info(
            "Plan ready",
            keywords=len(plan.primary_keywords),
            themes=len(plan.adjacent_themes),
            queries=len(plan.search_queries),
        )
        return plan

    def _to_plan(self, payload: QueryPlanPayload) -> QueryPlan:
        themes = tuple(
            AdjacentTheme(theme=t.theme.strip(), order=t.order, rationale=t.rationale.strip())
            for t in payload.adjacent_themes
            if t.theme.strip()
        )
        return QueryPlan(
            primary_keywords=tuple(payload.primary_keywords),
            adjacent_themes=themes,
            search_queries=tuple(payload.search_queries),
            industry_categories=tuple(payload.industry_categories),
            public_comps=tuple(payload.public_comps),
            thesis_summary=payload.thesis_summary.strip(),
        )
