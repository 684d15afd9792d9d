"""
Analyst Agent (deep analysis).

Writes an investment writeup and three 1-10 sub-scores for the top fit
candidates, then merges the model output back onto the discovery records.

Merge policy: provider-sourced facts always win. The model only fills gaps
(writeup, scores and facts discovery never captured). An analyzed name with
no exact case-insensitive match among the candidates is dropped, never
invented.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from scout.agents.base import Agent, AgentContext
from scout.agents.fit_filter import clamp_score
from scout.agents.schemas import AnalysisPayload, AnalyzedCompanyPayload
from scout.exceptions import StructuredOutputError
from scout.llm.parsing import ParseFailure, parse_structured
from scout.types import Candidate, QueryPlan, normalize_name

DEFAULT_SUB_SCORE = 5

ANALYST_SYSTEM = "You are a seed-stage investment analyst writing concise, evidence-based company memos."

ANALYST_PROMPT = """Analyze these REAL companies against an investment thesis.

CRITICAL: Only analyze the companies provided. Do NOT invent or hallucinate companies.
Do NOT infer what a company does from its name alone; use the description given.

For each company, provide:
1. A 2-3 paragraph investment analysis explaining thesis alignment
2. Final scores (1-10 each):
   - thesis_relevance: How well does this match the thesis?
   - recency: Based on founding date if known (10 = recent, 1 = old/unknown)
   - founding_team: Based on available info (5 = unknown, adjust if you know specifics)

Return JSON:
{{
  "analyzed_companies": [
    {{
      "name": "Exact company name from input",
      "description": "Your 1-sentence summary",
      "writeup": "2-3 paragraph investment analysis",
      "thesis_relevance": 8,
      "recency": 7,
      "founding_team": 5,
      "website": "https://company.com if you know it"
    }}
  ],
  "synthesis": "1-2 paragraphs synthesizing the overall landscape and key opportunities"
}}

INVESTMENT THESIS: "{thesis}"

THESIS CONTEXT:
{summary}

COMPANIES TO ANALYZE (pre-filtered for fit, from real sources):
{companies}

Provide deep analysis for each. Focus on WHY they fit (or don't) the thesis.
"""


@dataclass
class AnalysisResult:
    """Merged analysis output.

    ``companies`` keeps analysis order; ``ranked`` sorts by total score.
    """

    companies: list[Candidate] = field(default_factory=list)
    synthesis: str = ""
    analyzed: int = 0
    unmatched: list[str] = field(default_factory=list)

    @property
    def ranked(self) -> list[Candidate]:
        return sorted(self.companies, key=lambda c: c.total_score or 0, reverse=True)


def merge_analysis(candidate: Candidate, analyzed: AnalyzedCompanyPayload) -> Candidate:
    """Combine a discovery record with the model's analysis of it.

    Args:
        candidate: Discovery-stage record (authoritative for facts).
        analyzed: Model output for the same company.

    Returns:
        A new Candidate carrying the writeup and clamped sub-scores.
    """
    return replace(
        candidate,
        description=candidate.description or (analyzed.description or ""),
        website=candidate.website or analyzed.website,
        founded_year=candidate.founded_year if candidate.founded_year is not None else analyzed.founded_year,
        funding_total=candidate.funding_total if candidate.funding_total is not None else analyzed.funding_total,
        crunchbase_url=candidate.crunchbase_url or analyzed.crunchbase_url,
        x_url=candidate.x_url or analyzed.x_url,
        citations=list(candidate.citations),
        writeup=analyzed.writeup.strip(),
        thesis_relevance=clamp_score(analyzed.thesis_relevance, DEFAULT_SUB_SCORE),
        recency=clamp_score(analyzed.recency, DEFAULT_SUB_SCORE),
        founding_team=clamp_score(analyzed.founding_team, DEFAULT_SUB_SCORE),
    )


class AnalystAgent(Agent):
    """Deep analysis over the top fit-filtered candidates."""

    def __init__(self, context: AgentContext) -> None:
        super().__init__(context)

    @property
    def name(self) -> str:
        return "analyst"

    @property
    def role(self) -> str:
        return "Write investment analyses and score the top candidates"

    def _format_candidate(self, c: Candidate) -> str:
        info = f"- {c.name}"
        if c.description:
            info += f": {c.description}"
        if c.website:
            info += f" ({c.website})"
        if c.founded_year:
            info += f" [Founded: {c.founded_year}]"
        if c.funding_total:
            info += f" [Raised: ${c.funding_total / 1_000_000:.1f}M]"
        if c.last_funding_type:
            info += f" [Last round: {c.last_funding_type}]"
        if c.discovered_via_theme:
            info += f" [Adjacent theme: {c.discovered_via_theme}]"
        if c.fit_reason:
            info += f" [Pre-filter note: {c.fit_reason}]"
        return info

    def select(self, candidates: list[Candidate]) -> list[Candidate]:
        """Top N candidates by fit score (stable for ties and unscored runs)."""
        ordered = sorted(candidates, key=lambda c: c.fit_score or 0, reverse=True)
        return ordered[: self.settings.MAX_ANALYZED_COMPANIES]

    async def run(
        self,
        thesis: str,
        candidates: list[Candidate] | None = None,
        plan: QueryPlan | None = None,
        **kwargs: Any,
    ) -> AnalysisResult:
        """Analyze and merge.

        Args:
            thesis: The investment thesis.
            candidates: Fit-filtered candidates.
            plan: The run's QueryPlan (for the thesis summary).

        Returns:
            AnalysisResult with merged companies and the landscape synthesis.

        Raises:
            StructuredOutputError: If the response holds no valid analysis.
        """
        candidates = candidates or []
        if not candidates:
            return AnalysisResult(synthesis="No companies found to analyze.")

        top = self.select(candidates)
        self.log_info("Analyzing candidates", count=len(top), thinking_budget=self.settings.ANALYSIS_THINKING_BUDGET)

        response = await self.ask(
            ANALYST_SYSTEM,
            ANALYST_PROMPT.format(
                thesis=thesis,
                summary=(plan.thesis_summary if plan else "") or thesis,
                companies="\n".join(self._format_candidate(c) for c in top),
            ),
            model=self.settings.MODEL_ANALYST,
            max_tokens=8000,
            thinking_budget=self.settings.ANALYSIS_THINKING_BUDGET,
        )

        result = parse_structured(response.content, AnalysisPayload)
        if isinstance(result, ParseFailure):
            self.log_error("Analysis returned no usable payload", reason=result.reason)
            raise StructuredOutputError(
                "Failed to parse analysis response",
                context={"stage": "analyzing", "reason": result.reason},
            )

        by_key = {c.key: c for c in candidates}
        merged: list[Candidate] = []
        unmatched: list[str] = []
        used: set[str] = set()

        for analyzed in result.value.analyzed_companies:
            key = normalize_name(analyzed.name)
            real = by_key.get(key)
            if real is None:
                unmatched.append(analyzed.name)
                continue
            if key in used:
                continue
            used.add(key)
            merged.append(merge_analysis(real, analyzed))

        if unmatched:
            self.log_warning("Dropped analyzed names with no matching candidate", names=unmatched)

        self.log_info("Analysis finished", analyzed=len(result.value.analyzed_companies), kept=len(merged))
        return AnalysisResult(
            companies=merged,
            synthesis=result.value.synthesis.strip(),
            analyzed=len(result.value.analyzed_companies),
            unmatched=unmatched,
        )
