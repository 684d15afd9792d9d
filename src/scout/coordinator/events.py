"""
Pipeline events.

A run is consumed as a lazy sequence of these events. The union is closed:
progress and company events may repeat, and the sequence ends with exactly
one CompleteEvent or one ErrorEvent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from scout.types import Candidate, DiscoveryStats, ThesisSource


@dataclass(frozen=True)
class ProgressEvent:
    """Human-readable status text."""

    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "progress", "message": self.message}


@dataclass(frozen=True)
class CompanyEvent:
    """One merged, analyzed company."""

    company: Candidate

    def to_dict(self) -> dict[str, Any]:
        return {"type": "company", "data": self.company.to_dict()}


@dataclass(frozen=True)
class CompleteEvent:
    """Terminal success event."""

    companies: list[Candidate]
    public_comps: list[str]
    summary: str
    adjacent_themes: list[dict[str, Any]] = field(default_factory=list)
    discovery_stats: DiscoveryStats = field(default_factory=DiscoveryStats)
    thesis_sources: list[ThesisSource] = field(default_factory=list)
    thesis_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "complete",
            "data": {
                "companies": [c.to_dict() for c in self.companies],
                "public_comps": list(self.public_comps),
                "summary": self.summary,
                "adjacent_themes": list(self.adjacent_themes),
                "discovery_stats": self.discovery_stats.to_dict(),
                "thesis_sources": [s.to_dict() for s in self.thesis_sources],
                "thesis_id": self.thesis_id,
            },
        }


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal failure event."""

    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "error", "message": self.message}


PipelineEvent = Union[ProgressEvent, CompanyEvent, CompleteEvent, ErrorEvent]


def is_terminal(event: PipelineEvent) -> bool:
    """True for the events that end a run."""
    return isinstance(event, (CompleteEvent, ErrorEvent))
