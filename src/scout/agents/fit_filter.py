"""
Fit Filter Agent.

One batched model call scores every discovered candidate 1-10 against the
thesis and its adjacent themes, so that only plausible fits reach the
expensive analysis stage. Filtering is an optimization: if the response
cannot be parsed, every candidate passes through unscored.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from scout.agents.base import Agent, AgentContext
from scout.agents.schemas import FitFilterPayload, FitScorePayload
from scout.llm.parsing import ParseFailure, parse_structured
from scout.types import Candidate, QueryPlan, normalize_name

DEFAULT_FIT_SCORE = 5
DESCRIPTION_CHARS = 100

FIT_SYSTEM = "You are a skeptical seed-stage investment analyst doing a quick fit check."

FIT_PROMPT = """For each company, score how well it fits the thesis (1-10):
- 8-10: Strong fit, directly relevant
- 5-7: Moderate fit, adjacently relevant
- 1-4: Weak fit, probably not relevant

Classify each fit as "direct", "2nd_order" or "3rd_order".
Be FAST and HARSH. Only high scores for companies that clearly fit.

Return JSON only, keyed by the exact company name:
{{
  "Company Name": {{"fit_score": 8, "fit_type": "direct", "reason": "1 sentence why"}}
}}

THESIS: "{thesis}"

ADJACENT THEMES:
{themes}

COMPANIES:
{companies}
"""


@dataclass
class FitFilterResult:
    """Output of the fit filter."""

    candidates: list[Candidate]
    scored: bool = True
    dropped: int = 0


def clamp_score(value: int | None, default: int = DEFAULT_FIT_SCORE) -> int:
    """Clamp a model score to 1-10, substituting ``default`` when missing."""
    if value is None:
        return default
    return max(1, min(10, value))


class FitFilterAgent(Agent):
    """Scores and thresholds candidates before deep analysis."""

    def __init__(self, context: AgentContext) -> None:
        super().__init__(context)

    @property
    def name(self) -> str:
        return "fit_filter"

    @property
    def role(self) -> str:
        return "Score discovered companies for thesis fit and drop weak fits"

    def _format_themes(self, plan: QueryPlan | None) -> str:
        if plan is None or not plan.adjacent_themes:
            return "- (none)"
        return "\n".join(
            f"- {t.theme} ({t.order.value}): {t.rationale}" if t.rationale else f"- {t.theme} ({t.order.value})"
            for t in plan.adjacent_themes
        )

    def _format_candidates(self, candidates: list[Candidate]) -> str:
        lines = []
        for c in candidates:
            line = f"- {c.name}: {(c.description or '')[:DESCRIPTION_CHARS]}"
            if c.discovered_via_theme:
                line += f" [via theme: {c.discovered_via_theme}]"
            lines.append(line)
        return "\n".join(lines)

    async def run(
        self,
        thesis: str,
        candidates: list[Candidate] | None = None,
        plan: QueryPlan | None = None,
        **kwargs: Any,
    ) -> FitFilterResult:
        """Score candidates and keep those at or above the threshold.

        Args:
            thesis: The investment thesis.
            candidates: Discovery survivors.
            plan: The run's QueryPlan (for adjacent themes).

        Returns:
            FitFilterResult with survivors sorted by fit score, descending.
        """
        candidates = candidates or []
        if not candidates:
            return FitFilterResult(candidates=[])

        threshold = self.settings.FIT_SCORE_THRESHOLD
        self.log_info("Scoring candidates", count=len(candidates), threshold=threshold)

        response = await self.ask(
            FIT_SYSTEM,
            FIT_PROMPT.format(
                thesis=thesis,
                themes=self._format_themes(plan),
                companies=self._format_candidates(candidates),
            ),
            model=self.settings.MODEL_FILTER,
            max_tokens=4096,
        )

        result = parse_structured(response.content, FitFilterPayload)
        if isinstance(result, ParseFailure):
            self.log_warning("Fit filter parsing failed, passing all candidates", reason=result.reason)
            return FitFilterResult(candidates=list(candidates), scored=False)

        scores: dict[str, FitScorePayload] = {}
        for entry in result.value.scores:
            scores.setdefault(normalize_name(entry.name), entry)

        scored = []
        for candidate in candidates:
            entry = scores.get(candidate.key)
            scored.append(
                replace(
                    candidate,
                    fit_score=clamp_score(entry.fit_score if entry else None),
                    fit_type=entry.fit_type if entry else None,
                    fit_reason=entry.reason.strip() if entry else "",
                )
            )

        survivors = [c for c in scored if c.fit_score >= threshold]
        survivors.sort(key=lambda c: c.fit_score, reverse=True)

        self.log_info(
            "Fit filter finished",
            kept=len(survivors),
            dropped=len(scored) - len(survivors),
            unscored=sum(1 for c in candidates if c.key not in scores),
        )
        return FitFilterResult(candidates=survivors, dropped=len(scored) - len(survivors))
