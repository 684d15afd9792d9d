"""
Brave Search client and web candidate source.

Returns only titles, URLs and snippets. Web results are never trusted as
company records outright: a company name is extracted from the result title
and the candidate is flagged for enrichment.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse
from dataclasses import dataclass
from typing import Any

import httpx

from scout.exceptions import DataFetchError
from scout.logging import get_logger
from scout.sources.domains import domain_of, is_excluded_domain
from scout.types import Candidate, ProviderKind, SourceCitation

logger = get_logger(__name__)

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
MAX_COUNT = 20

_TITLE_SEPARATORS = re.compile(r"\s*[-–—|:]\s*")
_CORPORATE_SUFFIX = re.compile(
    r"[,\s]+(inc\.?|llc\.?|ltd\.?|corp\.?|corporation|company|co\.)$",
    re.IGNORECASE,
)


@dataclass
class SearchResult:
    """A single web search result (URL + metadata, NOT full content)."""

    title: str
    url: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {"title": self.title, "url": self.url, "description": self.description}


def extract_company_name(title: str) -> str | None:
    """Pull a plausible company name out of a result title.

    Splits on common separators (``-``, ``–``, ``|``, ``:``), keeps the
    first segment and strips a trailing corporate suffix.

    Args:
        title: Raw result title, e.g. "Acme Robotics, Inc. | Home".

    Returns:
        The name if it is 3-49 characters long, else None.
    """
    if not title:
        return None
    first = _TITLE_SEPARATORS.split(title.strip(), maxsplit=1)[0]
    name = _CORPORATE_SUFFIX.sub("", first).strip(" ,")
    if 3 <= len(name) < 50:
        return name
    return None


class BraveSearchClient:
    """Thin async client for the Brave web search API."""

    def __init__(
        self,
        api_key: str | None,
        timeout: float = 20.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Brave subscription token. Without it every search is empty.
            timeout: Request timeout in seconds.
            http_client: Optional shared client (tests inject a mock transport).
        """
        self.api_key = api_key
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

        if not api_key:
            logger.warning("BRAVE_API_KEY not set - web searches return nothing")

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _fetch(self, params: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": self.api_key or "",
        }
        try:
            response = await client.get(BRAVE_SEARCH_URL, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise DataFetchError(
                f"Brave API error: {e.response.status_code}",
                context={"source": "brave", "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            raise DataFetchError(f"Brave request failed: {e}", context={"source": "brave"}) from e
        except ValueError as e:
            raise DataFetchError("Failed to parse Brave response", context={"source": "brave"}) from e

        if not isinstance(data, dict):
            raise DataFetchError("Unexpected Brave response shape", context={"source": "brave"})
        return data

    async def search(self, query: str, count: int = 10, freshness: str | None = "py") -> list[SearchResult]:
        """Search the web.

        Args:
            query: Search query string.
            count: Maximum results (capped at 20).
            freshness: Recency window (pd, pw, pm, py or a date range).

        Returns:
            Search results, or ``[]`` on any failure.
        """
        if not self.api_key or not query:
            return []

        params: dict[str, Any] = {"q": query, "count": max(1, min(count, MAX_COUNT))}
        if freshness:
            params["freshness"] = freshness

        try:
            data = await self._fetch(params)
        except DataFetchError as e:
            logger.error("Brave search failed", query=query, error=str(e))
            return []
        except Exception as e:
            logger.error("Brave search crashed", query=query, error=str(e))
            return []

        web = data.get("web") or {}
        raw_results = web.get("results") if isinstance(web, dict) else None
        if not isinstance(raw_results, list):
            return []

        results = []
        for item in raw_results:
            if not isinstance(item, dict) or not item.get("url"):
                continue
            results.append(
                SearchResult(
                    title=item.get("title") or "",
                    url=item["url"],
                    description=item.get("description") or "",
                )
            )
        return results


# Startup-signal query templates, highest signal first. Tier 1 targets
# founder and launch channels; tier 2 targets funding coverage and research.
TIER_1_TEMPLATES = (
    "site:ycombinator.com/companies {q}",
    '"Y Combinator" "{q}" startup',
    'site:news.ycombinator.com "Show HN" {q}',
    'site:x.com "{q}" "building" OR "stealth" OR "pre-seed"',
    'site:linkedin.com "first engineer" OR "founding engineer" {q}',
)
TIER_2_TEMPLATES = (
    '{q} startup funding seed round',
    'site:techcrunch.com "{q}" "stealth" OR "seed round" OR "raises"',
    "site:arxiv.org {q} startup OR company OR founded",
    '"portfolio" "{q}" seed OR pre-seed venture',
    "{q} venture backed startup seed",
)
SIGNAL_RESULTS_PER_QUERY = 5

# Company profile pages hosted on otherwise excluded directories.
_PROFILE_PATHS = (("ycombinator.com", "/companies/"),)


def signal_queries(query: str, max_templates: int) -> list[tuple[int, str]]:
    """Expand a query into tiered startup-signal queries.

    Args:
        query: Keyword query from the plan.
        max_templates: Number of templates to use, tier 1 first. Zero sends
            the raw query alone.

    Returns:
        ``(tier, query)`` pairs in search order.
    """
    query = query.strip()
    if max_templates <= 0:
        return [(2, query)]
    tiered = [(1, t) for t in TIER_1_TEMPLATES] + [(2, t) for t in TIER_2_TEMPLATES]
    return [(tier, template.format(q=query)) for tier, template in tiered[:max_templates]]


def _profile_key(url: str) -> str | None:
    domain = domain_of(url)
    path = urlparse(url).path
    for host, prefix in _PROFILE_PATHS:
        slug = path[len(prefix):].strip("/") if path.startswith(prefix) else ""
        if domain == host and slug and "/" not in slug:
            return f"{host}{prefix}{slug}"
    return None


class BraveWebSource:
    """Candidate source backed by free-text web search."""

    def __init__(
        self,
        client: BraveSearchClient,
        freshness: str | None = "py",
        signal_templates: int = 0,
    ) -> None:
        """Initialize the source.

        Args:
            client: Brave search client.
            freshness: Recency window passed to every search.
            signal_templates: Startup-signal templates per search, bounding
                web calls to this many per query (one when zero).
        """
        self.client = client
        self.freshness = freshness
        self.signal_templates = signal_templates

    @property
    def name(self) -> str:
        return "web"

    @property
    def available(self) -> bool:
        return self.client.available

    def result_to_candidate(self, result: SearchResult, query: str, tier: int | None = None) -> Candidate | None:
        """Turn one search hit into an unverified candidate.

        Returns None for denylisted domains and titles without a usable name.
        Directory profile pages (a Y Combinator company page) are kept even
        though their host is denylisted.
        """
        if _profile_key(result.url) is None and is_excluded_domain(domain_of(result.url)):
            return None
        name = extract_company_name(result.title)
        if name is None:
            return None

        # An article URL is not the company's own site.
        return Candidate(
            name=name,
            source=ProviderKind.WEB,
            description=result.description,
            website=None,
            discovery_query=query,
            citations=[SourceCitation(type="web", url=result.url, label=result.title)],
            search_tier=tier,
            needs_enrichment=True,
        )

    async def search(self, query: str, limit: int = 10) -> list[Candidate]:
        """Search the web and extract candidate companies from titles.

        Tier 1 queries always run; tier 2 queries run only until ``limit``
        candidates are collected. One candidate is kept per domain (per
        profile page for directories), tier 1 first.
        """
        try:
            planned = signal_queries(query, self.signal_templates)
            tiered = self.signal_templates > 0
            per_query = SIGNAL_RESULTS_PER_QUERY if tiered else limit
            seen: set[str] = set()
            candidates: list[Candidate] = []

            for tier, text in planned:
                if tier > 1 and len(candidates) >= limit:
                    break
                results = await self.client.search(text, count=per_query, freshness=self.freshness)
                for result in results:
                    key = _profile_key(result.url) or domain_of(result.url)
                    if not key or key in seen:
                        continue
                    candidate = self.result_to_candidate(result, text, tier if tiered else None)
                    if candidate is None:
                        continue
                    seen.add(key)
                    candidates.append(candidate)

            if tiered:
                candidates.sort(key=lambda c: c.search_tier or 2)
                logger.debug("Web signal search finished", query=query, found=len(candidates))
            return candidates[:limit]
        except Exception as e:
            logger.error("Web source failed", query=query, error=str(e))
            return []
