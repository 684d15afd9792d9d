"""
Discovery Engine.

Fans a QueryPlan out across every available candidate source, waits for all
calls to settle, then folds the results into one deduplicated list of
early-stage, still-operating candidates annotated with provenance.

Results are folded in call order (source, then query list order), never in
completion order, so the surviving record for a duplicated name is
reproducible.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Sequence

from scout.funding import classify_funding_stage, is_inactive
from scout.logging import get_logger
from scout.sources.base import CandidateSource
from scout.types import Candidate, DiscoverySource, DiscoveryStats, FundingStage, QueryPlan

logger = get_logger(__name__)


@dataclass(frozen=True)
class DiscoveryQuery:
    """One adapter call planned from the QueryPlan."""

    text: str
    discovery_source: DiscoverySource
    theme: str | None = None


@dataclass
class DiscoveryResult:
    """Output of one discovery pass."""

    candidates: list[Candidate]
    stats: DiscoveryStats
    calls: int = 0
    duplicates: int = 0
    excluded: dict[str, int] = field(default_factory=dict)


def plan_queries(plan: QueryPlan, per_list: int = 3) -> list[DiscoveryQuery]:
    """Expand a plan into the query list used against every source.

    Each plan list (primary keywords, search queries, adjacent themes) is
    truncated to ``per_list`` entries to bound total calls.
    """
    queries = [DiscoveryQuery(k, DiscoverySource.PRIMARY) for k in plan.primary_keywords[:per_list]]
    queries += [DiscoveryQuery(q, DiscoverySource.PRIMARY) for q in plan.search_queries[:per_list]]
    queries += [
        DiscoveryQuery(t.theme, DiscoverySource.ADJACENT, theme=t.theme)
        for t in plan.adjacent_themes[:per_list]
    ]
    return [q for q in queries if q.text.strip()]


def exclusion_reason(candidate: Candidate) -> str | None:
    """Why a candidate is out of scope, or None if it stays.

    Args:
        candidate: A discovered candidate.

    Returns:
        "inactive", "late_stage" or None.
    """
    if is_inactive(candidate.operating_status):
        return "inactive"
    if classify_funding_stage(candidate.last_funding_type) == FundingStage.LATE:
        return "late_stage"
    return None


class DiscoveryEngine:
    """Concurrent multi-source candidate discovery."""

    def __init__(
        self,
        sources: Sequence[CandidateSource],
        queries_per_source: int = 3,
        results_per_query: int = 8,
    ) -> None:
        """Initialize the engine.

        Args:
            sources: Candidate sources, in precedence order for deduplication.
            queries_per_source: Entries taken from each plan list.
            results_per_query: Result cap for each adapter call.
        """
        self.sources = list(sources)
        self.queries_per_source = queries_per_source
        self.results_per_query = results_per_query

    @property
    def available_sources(self) -> list[CandidateSource]:
        return [s for s in self.sources if s.available]

    async def _call(self, source: CandidateSource, query: DiscoveryQuery) -> list[Candidate]:
        # Adapters already fail to empty; this guards against a broken one.
        try:
            return await source.search(query.text, limit=self.results_per_query)
        except Exception as e:
            logger.error("Source raised past its boundary", source=source.name, query=query.text, error=str(e))
            return []

    async def discover(self, plan: QueryPlan) -> DiscoveryResult:
        """Run every planned query against every available source.

        Args:
            plan: The run's QueryPlan.

        Returns:
            DiscoveryResult with surviving candidates and per-origin stats.
        """
        queries = plan_queries(plan, self.queries_per_source)
        sources = self.available_sources
        calls = [(source, query) for source in sources for query in queries]

        logger.info(
            "Starting discovery",
            sources=[s.name for s in sources],
            queries=len(queries),
            calls=len(calls),
        )

        batches = await asyncio.gather(*(self._call(source, query) for source, query in calls))

        seen: set[str] = set()
        survivors: list[Candidate] = []
        excluded: dict[str, int] = {}
        duplicates = 0
        stats = DiscoveryStats()

        for (source, query), found in zip(calls, batches):
            for candidate in found:
                name = candidate.name.strip()
                if not 1 < len(name) < 100:
                    continue

                key = candidate.key
                if key in seen:
                    duplicates += 1
                    continue
                seen.add(key)

                reason = exclusion_reason(candidate)
                if reason is not None:
                    excluded[reason] = excluded.get(reason, 0) + 1
                    logger.debug("Excluded candidate", name=name, reason=reason, source=source.name)
                    continue

                survivors.append(
                    replace(
                        candidate,
                        name=name,
                        discovery_source=query.discovery_source,
                        discovered_via_theme=query.theme,
                        discovery_query=query.text,
                        funding_stage=classify_funding_stage(candidate.last_funding_type),
                        citations=list(candidate.citations),
                    )
                )
                if query.discovery_source == DiscoverySource.ADJACENT:
                    stats.adjacent_themes += 1
                else:
                    stats.direct_thesis += 1

        logger.info(
            "Discovery finished",
            candidates=len(survivors),
            duplicates=duplicates,
            excluded=excluded,
            direct=stats.direct_thesis,
            adjacent=stats.adjacent_themes,
        )
        return DiscoveryResult(
            candidates=survivors,
            stats=stats,
            calls=len(calls),
            duplicates=duplicates,
            excluded=excluded,
        )
