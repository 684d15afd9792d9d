"""Candidate source adapters and their provider clients."""

from scout.sources.base import CandidateSource
from scout.sources.brave import BraveSearchClient, BraveWebSource, SearchResult, extract_company_name
from scout.sources.crunchbase import (
    CrunchbaseClient,
    CrunchbaseSource,
    Order,
    Predicate,
    match_organization,
    organization_to_candidate,
)

__all__ = [
    "BraveSearchClient",
    "BraveWebSource",
    "CandidateSource",
    "CrunchbaseClient",
    "CrunchbaseSource",
    "Order",
    "Predicate",
    "SearchResult",
    "extract_company_name",
    "match_organization",
    "organization_to_candidate",
]
