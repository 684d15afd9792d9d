"""Pipeline stages: planning, discovery, enrichment, filtering and analysis."""

from scout.agents.analyst import AnalysisResult, AnalystAgent
from scout.agents.base import Agent, AgentContext
from scout.agents.discovery import DiscoveryEngine, DiscoveryResult
from scout.agents.enricher import CandidateEnricher, EnrichmentResult, EnrichmentStep
from scout.agents.fit_filter import FitFilterAgent, FitFilterResult
from scout.agents.query_planner import QueryPlannerAgent
from scout.agents.thesis_sources import ThesisSourceFinder

__all__ = [
    "Agent",
    "AgentContext",
    "AnalysisResult",
    "AnalystAgent",
    "CandidateEnricher",
    "DiscoveryEngine",
    "DiscoveryResult",
    "EnrichmentResult",
    "EnrichmentStep",
    "FitFilterAgent",
    "FitFilterResult",
    "QueryPlannerAgent",
    "ThesisSourceFinder",
]
