"""
Thesis source finder.

Collects citations that support the thesis itself (patents, papers, VC
research, industry reports) independent of any company. Runs alongside
candidate discovery and never fails a run: no key or failed searches
simply yield no sources.
"""

from __future__ import annotations

import asyncio

from scout.logging import get_logger
from scout.sources.brave import BraveSearchClient, SearchResult
from scout.sources.domains import domain_of, is_social_domain, normalize_url
from scout.types import QueryPlan, ThesisSource, ThesisSourceType

logger = get_logger(__name__)

MAX_SOURCES = 10
RESULTS_PER_QUERY = 5

PATENT_DOMAINS = ("patents.google.com", "uspto.gov", "wipo.int", "epo.org")
PAPER_DOMAINS = (
    "arxiv.org",
    "nature.com",
    "science.org",
    "ieee.org",
    "acm.org",
    "ncbi.nlm.nih.gov",
    "sciencedirect.com",
    "springer.com",
    "biorxiv.org",
    "semanticscholar.org",
)
VC_DOMAINS = (
    "a16z.com",
    "sequoiacap.com",
    "greylock.com",
    "nfx.com",
    "bvp.com",
    "lsvp.com",
    "accel.com",
    "indexventures.com",
    "foundersfund.com",
    "gv.com",
    "luxcapital.com",
)
REPORT_DOMAINS = (
    "mckinsey.com",
    "bcg.com",
    "bain.com",
    "gartner.com",
    "deloitte.com",
    "pwc.com",
    "cbinsights.com",
    "pitchbook.com",
    "iea.org",
    "weforum.org",
)
NEWSLETTER_DOMAINS = ("substack.com", "beehiiv.com")

# (query template, expected type)
RESEARCH_QUERIES = (
    ("{topic} patent", ThesisSourceType.PATENT),
    ("{topic} research paper", ThesisSourceType.PAPER),
    ("{topic} venture capital thesis market map", ThesisSourceType.VC_RESEARCH),
    ("{topic} industry report market size", ThesisSourceType.REPORT),
)


def _in(domain: str, domains: tuple[str, ...]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in domains)


def classify_source(url: str) -> tuple[ThesisSourceType, int]:
    """Categorize a citation URL and assign its quality tier.

    Args:
        url: Result URL.

    Returns:
        (type, tier) where tier 1 is academic/patent, 2 VC/consulting and
        3 everything else.
    """
    domain = domain_of(url)
    if _in(domain, PATENT_DOMAINS):
        return ThesisSourceType.PATENT, 1
    if _in(domain, PAPER_DOMAINS) or domain.endswith(".edu"):
        return ThesisSourceType.PAPER, 1
    if _in(domain, VC_DOMAINS):
        return ThesisSourceType.VC_RESEARCH, 2
    if _in(domain, REPORT_DOMAINS):
        return ThesisSourceType.REPORT, 2
    if _in(domain, NEWSLETTER_DOMAINS):
        return ThesisSourceType.NEWSLETTER, 3
    return ThesisSourceType.ARTICLE, 3


class ThesisSourceFinder:
    """Finds research citations for a thesis via web search."""

    def __init__(self, client: BraveSearchClient, max_sources: int = MAX_SOURCES) -> None:
        self.client = client
        self.max_sources = max_sources

    def build_queries(self, plan: QueryPlan) -> list[str]:
        topic = " ".join(plan.primary_keywords[:3]).strip()
        if not topic:
            return []
        return [template.format(topic=topic) for template, _ in RESEARCH_QUERIES]

    async def _search(self, query: str) -> list[SearchResult]:
        try:
            return await self.client.search(query, count=RESULTS_PER_QUERY, freshness=None)
        except Exception as e:
            logger.error("Thesis source search failed", query=query, error=str(e))
            return []

    async def find(self, plan: QueryPlan) -> list[ThesisSource]:
        """Search for thesis-level citations.

        Args:
            plan: The run's QueryPlan.

        Returns:
            Up to ``max_sources`` sources, deduplicated by normalized URL and
            sorted by tier.
        """
        if not self.client.available:
            return []

        queries = self.build_queries(plan)
        batches = await asyncio.gather(*(self._search(q) for q in queries))

        seen: set[str] = set()
        sources: list[ThesisSource] = []
        for query, results in zip(queries, batches):
            for result in results:
                if is_social_domain(domain_of(result.url)):
                    continue
                key = normalize_url(result.url)
                if not key or key in seen:
                    continue
                seen.add(key)
                source_type, tier = classify_source(result.url)
                sources.append(
                    ThesisSource(
                        title=result.title,
                        url=result.url,
                        description=result.description,
                        type=source_type,
                        tier=tier,
                        query=query,
                    )
                )

        sources.sort(key=lambda s: s.tier)
        logger.info("Thesis sources collected", found=len(sources), kept=min(len(sources), self.max_sources))
        return sources[: self.max_sources]
