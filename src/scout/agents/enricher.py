"""
Cross-provider enrichment.

Resolves web-discovered candidates into Crunchbase-verified records in
small batches, awaiting each batch before starting the next so the company
database never sees more than ``batch_size`` concurrent lookups.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, AsyncIterator

from scout.agents.discovery import exclusion_reason
from scout.logging import get_logger
from scout.sources.crunchbase import CrunchbaseClient, organization_to_candidate
from scout.types import Candidate

logger = get_logger(__name__)


@dataclass
class EnrichmentResult:
    """Output of an enrichment pass."""

    candidates: list[Candidate]
    attempted: int = 0
    verified: int = 0
    dropped: int = 0


def apply_enrichment(candidate: Candidate, props: dict[str, Any]) -> Candidate:
    """Fold a verified organization record into a web-discovered candidate.

    Provider facts replace the unverified ones; provenance is kept and the
    provider profile is appended to the citations.
    """
    record = organization_to_candidate(props)
    if record is None:
        return candidate

    citations = list(candidate.citations)
    known = {c.url for c in citations}
    citations += [c for c in record.citations if c.url not in known]

    return replace(
        candidate,
        description=candidate.description or record.description,
        website=record.website or candidate.website,
        founded_year=record.founded_year,
        funding_total=record.funding_total,
        last_funding_type=record.last_funding_type,
        operating_status=record.operating_status,
        funding_stage=record.funding_stage,
        permalink=record.permalink,
        crunchbase_url=record.crunchbase_url,
        x_url=record.x_url or candidate.x_url,
        citations=citations,
        needs_enrichment=False,
        verified=True,
    )


@dataclass
class EnrichmentStep:
    """Progress of an enrichment pass. ``result`` is set on the final step only."""

    done: int
    total: int
    result: EnrichmentResult | None = None


class CandidateEnricher:
    """Batched enrichment of candidates flagged ``needs_enrichment``."""

    def __init__(self, client: CrunchbaseClient, batch_size: int = 5) -> None:
        self.client = client
        self.batch_size = max(1, batch_size)

    async def _lookup(self, candidate: Candidate) -> dict[str, Any] | None:
        try:
            return await self.client.enrich(candidate.name, candidate.description or None)
        except Exception as e:
            logger.error("Enrichment lookup failed", name=candidate.name, error=str(e))
            return None

    async def iter_enrich(self, candidates: list[Candidate]) -> AsyncIterator[EnrichmentStep]:
        """Resolve candidates batch by batch, reporting after each batch.

        Args:
            candidates: Discovery survivors.

        Yields:
            One step per completed batch, then a final step carrying the
            EnrichmentResult.
        """
        pending = [i for i, c in enumerate(candidates) if c.needs_enrichment]
        resolved: dict[int, dict[str, Any] | None] = {}

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            results = await asyncio.gather(*(self._lookup(candidates[i]) for i in batch))
            resolved.update(zip(batch, results))
            logger.debug("Enrichment batch done", size=len(batch), done=len(resolved), total=len(pending))
            yield EnrichmentStep(done=len(resolved), total=len(pending))

        yield EnrichmentStep(done=len(pending), total=len(pending), result=self._fold(candidates, resolved))

    def _fold(self, candidates: list[Candidate], resolved: dict[int, dict[str, Any] | None]) -> EnrichmentResult:
        output: list[Candidate] = []
        verified = dropped = 0
        for i, candidate in enumerate(candidates):
            props = resolved.get(i)
            if props is None:
                output.append(candidate)
                continue

            enriched = apply_enrichment(candidate, props)
            reason = exclusion_reason(enriched)
            if reason is not None:
                dropped += 1
                logger.info("Dropped after enrichment", name=candidate.name, reason=reason)
                continue
            verified += 1
            output.append(enriched)

        logger.info("Enrichment finished", attempted=len(resolved), verified=verified, dropped=dropped)
        return EnrichmentResult(candidates=output, attempted=len(resolved), verified=verified, dropped=dropped)

    async def enrich(self, candidates: list[Candidate]) -> EnrichmentResult:
        """Resolve every candidate that needs it, preserving order.

        Args:
            candidates: Discovery survivors.

        Returns:
            EnrichmentResult. Candidates that turn out late-stage or inactive
            once verified are dropped; unmatched ones are kept unverified.
        """
        result = EnrichmentResult(candidates=list(candidates))
        async for step in self.iter_enrich(candidates):
            if step.result is not None:
                result = step.result
        return result
