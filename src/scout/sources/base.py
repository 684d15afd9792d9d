"""
Interface shared by candidate sources.

A source turns a query into normalized Candidate records. Implementations
must return ``[]`` instead of raising on missing credentials, HTTP errors,
network failures or malformed bodies: the discovery engine fans out calls
without per-call error handling.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from scout.types import Candidate


@runtime_checkable
class CandidateSource(Protocol):
    """Protocol for discovery providers."""

    @property
    def name(self) -> str:
        """Short provider name used in logs and progress messages."""
        ...

    @property
    def available(self) -> bool:
        """Whether credentials are configured."""
        ...

    async def search(self, query: str, limit: int = 10) -> list[Candidate]:
        """Search the provider.

        Args:
            query: Free-text query.
            limit: Maximum number of raw results requested.

        Returns:
            Normalized candidates, or an empty list on any failure.
        """
        ...
