"""
Core types for thesis scout.

This module defines the data structures shared across the pipeline:
- Enums for run status, pipeline stages and classifications
- Frozen dataclasses for immutable stage outputs (QueryPlan, ThesisSource)
- The Candidate record enriched stage by stage
- Helper functions for ID generation, timestamps and name normalization
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from uuid6 import uuid7


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "run").

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def normalize_name(name: str) -> str:
    """Deduplication key for a company name."""
    return name.strip().lower()


class ThesisStatus(str, Enum):
    """Persisted lifecycle of a thesis run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


class Stage(str, Enum):
    """States of the pipeline orchestrator."""

    PLANNING = "planning"
    DISCOVERING = "discovering"
    ENRICHING = "enriching"
    FILTERING = "filtering"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    FAILED = "failed"


class FundingStage(str, Enum):
    """Normalized bucket for a raw funding-round type."""

    EARLY = "early"
    LATE = "late"
    UNKNOWN = "unknown"


class ProviderKind(str, Enum):
    """Which provider produced a candidate."""

    CRUNCHBASE = "crunchbase"
    WEB = "web"


class DiscoverySource(str, Enum):
    """Whether a candidate came from the thesis itself or an adjacent theme."""

    PRIMARY = "primary"
    ADJACENT = "adjacent"


class ThemeOrder(str, Enum):
    """Causal order of an adjacent theme relative to the thesis."""

    SECOND = "2nd"
    THIRD = "3rd"
    PICKS_SHOVELS = "picks_shovels"
    PARALLEL = "parallel"


class FitType(str, Enum):
    """How a candidate relates to the thesis."""

    DIRECT = "direct"
    SECOND_ORDER = "2nd_order"
    THIRD_ORDER = "3rd_order"


class ThesisSourceType(str, Enum):
    """Category of a citation supporting the thesis."""

    PATENT = "patent"
    PAPER = "paper"
    VC_RESEARCH = "vc_research"
    REPORT = "report"
    NEWSLETTER = "newsletter"
    ARTICLE = "article"


@dataclass(frozen=True)
class AdjacentTheme:
    """A second/third-order implication of the thesis."""

    theme: str
    order: ThemeOrder
    rationale: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"theme": self.theme, "order": self.order.value, "rationale": self.rationale}


@dataclass(frozen=True)
class QueryPlan:
    """Structured expansion of a thesis, produced once per run."""

    primary_keywords: tuple[str, ...]
    adjacent_themes: tuple[AdjacentTheme, ...]
    search_queries: tuple[str, ...]
    industry_categories: tuple[str, ...] = ()
    public_comps: tuple[str, ...] = ()
    thesis_summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "primary_keywords": list(self.primary_keywords),
            "adjacent_themes": [t.to_dict() for t in self.adjacent_themes],
            "search_queries": list(self.search_queries),
            "industry_categories": list(self.industry_categories),
            "public_comps": list(self.public_comps),
            "thesis_summary": self.thesis_summary,
        }


@dataclass(frozen=True)
class SourceCitation:
    """A link backing a candidate (provider profile, article, ...)."""

    type: str
    url: str
    label: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "url": self.url, "label": self.label}


@dataclass
class Candidate:
    """A company discovered during a run.

    Discovery fills the factual fields, the fit filter adds fit_*, and deep
    analysis adds the writeup and the three sub-scores. Stages return updated
    copies rather than mutating records they received.
    """

    name: str
    source: ProviderKind
    description: str = ""
    website: str | None = None
    founded_year: int | None = None
    funding_total: float | None = None
    last_funding_type: str | None = None
    operating_status: str | None = None

    # Provenance
    discovery_source: DiscoverySource = DiscoverySource.PRIMARY
    discovered_via_theme: str | None = None
    discovery_query: str | None = None
    citations: list[SourceCitation] = field(default_factory=list)
    funding_stage: FundingStage = FundingStage.UNKNOWN
    search_tier: int | None = None

    # Verification
    needs_enrichment: bool = False
    verified: bool = False
    permalink: str | None = None
    crunchbase_url: str | None = None
    x_url: str | None = None

    # Fit filter
    fit_score: int | None = None
    fit_type: FitType | None = None
    fit_reason: str = ""

    # Deep analysis
    writeup: str = ""
    thesis_relevance: int | None = None
    recency: int | None = None
    founding_team: int | None = None

    @property
    def key(self) -> str:
        """Normalized name used for deduplication."""
        return normalize_name(self.name)

    @property
    def total_score(self) -> int | None:
        """Sum of the three analysis sub-scores, once all are known."""
        scores = (self.thesis_relevance, self.recency, self.founding_team)
        if any(s is None for s in scores):
            return None
        return sum(scores)  # type: ignore[arg-type]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "name": self.name,
            "source": self.source.value,
            "description": self.description,
            "website": self.website,
            "founded_year": self.founded_year,
            "funding_total": self.funding_total,
            "last_funding_type": self.last_funding_type,
            "operating_status": self.operating_status,
            "discovery_source": self.discovery_source.value,
            "discovered_via_theme": self.discovered_via_theme,
            "discovery_query": self.discovery_query,
            "sources": [c.to_dict() for c in self.citations],
            "funding_stage": self.funding_stage.value,
            "search_tier": self.search_tier,
            "needs_enrichment": self.needs_enrichment,
            "verified": self.verified,
            "crunchbase_url": self.crunchbase_url,
            "x_url": self.x_url,
            "fit_score": self.fit_score,
            "fit_type": self.fit_type.value if self.fit_type else None,
            "fit_reason": self.fit_reason,
            "writeup": self.writeup,
            "thesis_relevance": self.thesis_relevance,
            "recency": self.recency,
            "founding_team": self.founding_team,
            "total_score": self.total_score,
        }


@dataclass(frozen=True)
class ThesisSource:
    """A citation supporting the thesis itself, independent of any company."""

    title: str
    url: str
    description: str
    type: ThesisSourceType
    tier: int
    query: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "type": self.type.value,
            "tier": self.tier,
            "query": self.query,
        }


@dataclass
class DiscoveryStats:
    """How many surviving candidates each kind of query produced."""

    direct_thesis: int = 0
    adjacent_themes: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"direct_thesis": self.direct_thesis, "adjacent_themes": self.adjacent_themes}


@dataclass
class Thesis:
    """A persisted thesis run."""

    id: int
    text: str
    status: ThesisStatus
    created_at: datetime
    completed_at: datetime | None = None
    summary: str | None = None
    public_comps: list[str] = field(default_factory=list)
    adjacent_themes: list[dict[str, Any]] = field(default_factory=list)
    discovery_stats: dict[str, int] = field(default_factory=dict)
    company_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "thesis": self.text,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "summary": self.summary,
            "public_comps": self.public_comps,
            "adjacent_themes": self.adjacent_themes,
            "discovery_stats": self.discovery_stats,
            "company_count": self.company_count,
        }
