"""
Crunchbase v4 client and candidate source.

Provides:
- Field-scoped organization search (predicates, ordering, result cap)
- Full organization lookup by permalink
- Name enrichment: resolve a loosely-known company into a verified record

Every public call is fail-soft: a missing key, non-2xx response, network
error or malformed body is logged and reported as an empty result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from scout.exceptions import DataFetchError
from scout.funding import classify_funding_stage
from scout.logging import get_logger
from scout.types import Candidate, ProviderKind, SourceCitation, normalize_name

logger = get_logger(__name__)

CRUNCHBASE_BASE_URL = "https://api.crunchbase.com/api/v4"
CRUNCHBASE_ORG_URL = "https://www.crunchbase.com/organization"

SEARCH_FIELD_IDS = [
    "identifier",
    "short_description",
    "founded_on",
    "website_url",
    "linkedin_url",
    "twitter_url",
    "num_employees_enum",
    "funding_total",
    "last_funding_type",
    "last_funding_at",
    "operating_status",
    "founder_identifiers",
]

ENTITY_FIELD_IDS = SEARCH_FIELD_IDS + ["categories"]

# Enrichment context is only enforced when longer than this.
MIN_CONTEXT_LENGTH = 10
MIN_CONTEXT_WORD_LENGTH = 5

_CONTEXT_STOPWORDS = frozenset({
    "about", "based", "build", "builds", "building", "company", "companies",
    "develop", "develops", "platform", "provide", "provides", "provider",
    "solution", "solutions", "startup", "their", "there", "these", "which",
    "while", "using", "other", "offers", "service", "services", "world",
})

_WORD = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class Predicate:
    """A field-scoped Crunchbase search predicate."""

    field_id: str
    operator_id: str
    values: tuple[Any, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "predicate",
            "field_id": self.field_id,
            "operator_id": self.operator_id,
            "values": list(self.values),
        }


@dataclass(frozen=True)
class Order:
    """Server-side ordering for search results."""

    field_id: str
    sort: str = "desc"

    def to_dict(self) -> dict[str, str]:
        return {"field_id": self.field_id, "sort": self.sort}


def _value(raw: Any) -> Any:
    """Crunchbase wraps some fields as {"value": ...}; unwrap either form."""
    if isinstance(raw, dict):
        return raw.get("value")
    return raw


def _founded_year(raw: Any) -> int | None:
    value = _value(raw)
    if not value:
        return None
    try:
        return int(str(value).split("-")[0])
    except ValueError:
        return None


def _funding_usd(raw: Any) -> float | None:
    if isinstance(raw, dict):
        raw = raw.get("value_usd", raw.get("value"))
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _x_url(raw: Any) -> str | None:
    value = _value(raw)
    if not value:
        return None
    value = str(value)
    if value.startswith("http"):
        return value
    return f"https://x.com/{value.lstrip('@')}"


def organization_name(props: dict[str, Any]) -> str | None:
    """Display name of an organization record."""
    identifier = props.get("identifier")
    if isinstance(identifier, dict):
        return identifier.get("value")
    return identifier if isinstance(identifier, str) else None


def organization_permalink(props: dict[str, Any]) -> str | None:
    """Stable identifier of an organization record."""
    identifier = props.get("identifier")
    if isinstance(identifier, dict):
        return identifier.get("permalink")
    return None


def organization_to_candidate(props: dict[str, Any]) -> Candidate | None:
    """Normalize a Crunchbase organization property bundle.

    Args:
        props: The ``properties`` object of a search entity or entity lookup.

    Returns:
        A verified Candidate, or None if the record has no name.
    """
    name = organization_name(props)
    if not name:
        return None

    permalink = organization_permalink(props)
    crunchbase_url = f"{CRUNCHBASE_ORG_URL}/{permalink}" if permalink else None
    website = _value(props.get("website_url")) or None
    last_funding_type = props.get("last_funding_type") or None

    citations: list[SourceCitation] = []
    if crunchbase_url:
        citations.append(SourceCitation(type="crunchbase", url=crunchbase_url, label="Crunchbase profile"))

    return Candidate(
        name=name.strip(),
        source=ProviderKind.CRUNCHBASE,
        description=props.get("short_description") or "",
        website=website,
        founded_year=_founded_year(props.get("founded_on")),
        funding_total=_funding_usd(props.get("funding_total")),
        last_funding_type=last_funding_type,
        operating_status=props.get("operating_status") or None,
        citations=citations,
        funding_stage=classify_funding_stage(last_funding_type),
        verified=True,
        permalink=permalink,
        crunchbase_url=crunchbase_url,
        x_url=_x_url(props.get("twitter_url")),
    )


def _context_words(context: str, name: str) -> set[str]:
    name_words = set(_WORD.findall(normalize_name(name)))
    return {
        w
        for w in _WORD.findall(context.lower())
        if len(w) >= MIN_CONTEXT_WORD_LENGTH and w not in name_words and w not in _CONTEXT_STOPWORDS
    }


def match_organization(
    name: str,
    results: Sequence[dict[str, Any]],
    context: str | None = None,
) -> dict[str, Any] | None:
    """Pick the search result that really is the named company.

    A result matches when (a) its name equals or contains the query name,
    or vice versa, case-insensitively, and (b) if a usable context
    description is given, at least one distinctive context word appears in
    the result's description. Same-named unrelated companies fail (b).

    Args:
        name: Loosely-known company name.
        results: Search entities (each with a ``properties`` object).
        context: Known description of the company, if any.

    Returns:
        The matching ``properties`` bundle, or None. Never guesses.
    """
    wanted = normalize_name(name)
    if not wanted:
        return None

    words: set[str] = set()
    if context and len(context.strip()) > MIN_CONTEXT_LENGTH:
        words = _context_words(context, name)

    for entity in results:
        props = entity.get("properties") or {}
        found = normalize_name(organization_name(props) or "")
        if not found:
            continue
        if not (found == wanted or wanted in found or found in wanted):
            continue
        if words:
            description = (props.get("short_description") or "").lower()
            if not any(w in description for w in words):
                logger.debug("Rejected same-name match without context overlap", name=name, candidate=found)
                continue
        return props

    return None


class CrunchbaseClient:
    """Thin async client for the Crunchbase v4 API."""

    def __init__(
        self,
        api_key: str | None,
        timeout: float = 20.0,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = CRUNCHBASE_BASE_URL,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Crunchbase user key. Without it every call is empty.
            timeout: Request timeout in seconds.
            http_client: Optional shared client (tests inject a mock transport).
            base_url: API root.
        """
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url
        self._client = http_client
        self._owns_client = http_client is None

        if not api_key:
            logger.warning("CRUNCHBASE_API_KEY not set - company database searches return nothing")

    @property
    def available(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Issue one API call.

        Raises:
            DataFetchError: On HTTP, network or body errors.
        """
        client = await self._get_client()
        headers = {"X-cb-user-key": self.api_key or "", "Content-Type": "application/json"}

        try:
            response = await client.request(method, f"{self.base_url}/{path}", headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DataFetchError(
                f"Crunchbase API error: {e.response.status_code}",
                context={"source": "crunchbase", "path": path, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            raise DataFetchError(
                f"Crunchbase request failed: {e}",
                context={"source": "crunchbase", "path": path},
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise DataFetchError(
                "Failed to parse Crunchbase response",
                context={"source": "crunchbase", "path": path},
            ) from e

        if not isinstance(data, dict):
            raise DataFetchError(
                "Unexpected Crunchbase response shape",
                context={"source": "crunchbase", "path": path},
            )
        return data

    async def search_organizations(
        self,
        query: str | None,
        limit: int = 10,
        predicates: Sequence[Predicate] = (),
        order: Sequence[Order] = (),
    ) -> list[dict[str, Any]]:
        """Search organizations.

        Args:
            query: Name fragment (``identifier contains``); None for
                predicate-only searches.
            limit: Result cap.
            predicates: Extra field-scoped predicates, ANDed together.
            order: Server-side ordering.

        Returns:
            Raw search entities, or ``[]`` on any failure.
        """
        if not self.api_key:
            return []

        clauses = [p.to_dict() for p in predicates]
        if query:
            clauses.insert(0, Predicate("identifier", "contains", (query,)).to_dict())

        payload: dict[str, Any] = {
            "field_ids": SEARCH_FIELD_IDS,
            "query": clauses,
            "limit": limit,
        }
        if order:
            payload["order"] = [o.to_dict() for o in order]

        try:
            data = await self._request("POST", "searches/organizations", json=payload)
        except DataFetchError as e:
            logger.error("Crunchbase search failed", query=query, error=str(e))
            return []
        except Exception as e:
            logger.error("Crunchbase search crashed", query=query, error=str(e))
            return []

        entities = data.get("entities")
        if not isinstance(entities, list):
            return []
        return [e for e in entities if isinstance(e, dict)]

    async def get_organization(self, permalink: str) -> dict[str, Any] | None:
        """Fetch one organization's full record.

        Args:
            permalink: Stable Crunchbase identifier.

        Returns:
            The ``properties`` bundle, or None on any failure.
        """
        if not self.api_key or not permalink:
            return None

        try:
            data = await self._request(
                "GET",
                f"entities/organizations/{permalink}",
                params={"field_ids": ",".join(ENTITY_FIELD_IDS)},
            )
        except DataFetchError as e:
            logger.warning("Crunchbase lookup failed", permalink=permalink, error=str(e))
            return None
        except Exception as e:
            logger.error("Crunchbase lookup crashed", permalink=permalink, error=str(e))
            return None

        props = data.get("properties")
        return props if isinstance(props, dict) else None

    async def enrich(self, name: str, context: str | None = None) -> dict[str, Any] | None:
        """Resolve a loosely-known company name into a verified record.

        Args:
            name: Company name as discovered (e.g., from a web title).
            context: Known description, used to reject same-named companies.

        Returns:
            The matching organization's properties, or None for "no match".
        """
        results = await self.search_organizations(name, limit=3)
        if not results:
            logger.debug("No Crunchbase results for enrichment", name=name)
            return None

        match = match_organization(name, results, context)
        if match is None:
            logger.info("No verified Crunchbase match", name=name, candidates=len(results))
        return match


class CrunchbaseSource:
    """Candidate source backed by Crunchbase organization search."""

    def __init__(
        self,
        client: CrunchbaseClient,
        predicates: Sequence[Predicate] = (),
        order: Sequence[Order] = (),
    ) -> None:
        """Initialize the source.

        Args:
            client: Crunchbase API client.
            predicates: Predicates added to every search (e.g., founded after).
            order: Server-side ordering applied to every search.
        """
        self.client = client
        self.predicates = tuple(predicates)
        self.order = tuple(order)

    @property
    def name(self) -> str:
        return "crunchbase"

    @property
    def available(self) -> bool:
        return self.client.available

    async def search(self, query: str, limit: int = 10) -> list[Candidate]:
        """Search organizations and normalize them into candidates."""
        try:
            entities = await self.client.search_organizations(
                query, limit=limit, predicates=self.predicates, order=self.order
            )
            candidates = []
            for entity in entities:
                candidate = organization_to_candidate(entity.get("properties") or {})
                if candidate is not None:
                    candidate.discovery_query = query
                    candidates.append(candidate)
            return candidates
        except Exception as e:
            logger.error("Crunchbase source failed", query=query, error=str(e))
            return []
