"""
Thesis Research Pipeline Coordinator.

Orchestrates one thesis run as a lazy sequence of events:
1. Planning - expand the thesis into keywords, adjacent themes and queries
2. Discovering - fan queries out across every candidate source (and collect
   thesis-level citations alongside)
3. Enriching - optionally verify web-discovered candidates in Crunchbase
4. Filtering - batched fit scoring with a hard threshold
5. Analyzing - deep analysis of the top candidates, merged with real data

The coordinator is the only component that writes to the store: one row per
analyzed company and one final update per run.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Awaitable, Sequence, TypeVar

from scout.agents.analyst import AnalystAgent
from scout.agents.base import AgentContext
from scout.agents.discovery import DiscoveryEngine, DiscoveryResult
from scout.agents.enricher import CandidateEnricher
from scout.agents.fit_filter import FitFilterAgent
from scout.agents.query_planner import QueryPlannerAgent
from scout.agents.thesis_sources import ThesisSourceFinder
from scout.config import Settings
from scout.coordinator.events import (
    CompanyEvent,
    CompleteEvent,
    ErrorEvent,
    PipelineEvent,
    ProgressEvent,
)
from scout.exceptions import ValidationError
from scout.llm.anthropic_client import AnthropicClient
from scout.llm.base import LLMClient
from scout.logging import get_logger, log_context
from scout.sources.base import CandidateSource
from scout.sources.brave import BraveSearchClient, BraveWebSource
from scout.sources.crunchbase import CrunchbaseClient, CrunchbaseSource
from scout.store.thesis_store import ThesisStore
from scout.types import Candidate, DiscoveryStats, QueryPlan, Stage, ThesisSource, generate_id

logger = get_logger(__name__)

T = TypeVar("T")


class ResearchPipeline:
    """Thesis-driven startup discovery pipeline."""

    def __init__(
        self,
        settings: Settings,
        llm: LLMClient,
        sources: Sequence[CandidateSource],
        enricher: CandidateEnricher | None = None,
        source_finder: ThesisSourceFinder | None = None,
        store: ThesisStore | None = None,
        clients: Sequence[Any] = (),
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings.
            llm: Language model client shared by the agents.
            sources: Candidate sources, in deduplication precedence order.
            enricher: Optional Crunchbase enricher for web candidates.
            source_finder: Optional thesis citation finder.
            store: Optional store; runs are not persisted without one.
            clients: Provider clients closed by close().
        """
        self.settings = settings
        self.llm = llm
        self.store = store
        self.enricher = enricher
        self.source_finder = source_finder
        self._clients = list(clients)

        context = AgentContext(settings=settings, llm=llm)
        self.planner = QueryPlannerAgent(context)
        self.fit_filter = FitFilterAgent(context)
        self.analyst = AnalystAgent(context)
        self.discovery = DiscoveryEngine(
            sources,
            queries_per_source=settings.QUERIES_PER_SOURCE,
            results_per_query=settings.RESULTS_PER_QUERY,
        )

    async def _stage(self, run_id: str, stage: Stage, work: Awaitable[T]) -> T:
        """Await one stage with run/stage logging context."""
        with log_context(run_id=run_id, stage=stage.value):
            logger.info("Stage started")
            loop = asyncio.get_running_loop()
            started = loop.time()
            result = await work
            logger.info("Stage finished", duration_seconds=round(loop.time() - started, 2))
            return result

    def _start(self, run_id: str, stage: Stage, work: Awaitable[T]) -> asyncio.Task[T]:
        """Run a stage in the background so the caller can report while it works."""
        return asyncio.create_task(self._stage(run_id, stage, work))

    async def _settled(self, task: asyncio.Task[Any]) -> bool:
        """Wait up to one heartbeat interval; True once ``task`` is done."""
        done, _ = await asyncio.wait({task}, timeout=self.settings.PROGRESS_HEARTBEAT_SECONDS)
        return bool(done)

    async def _find_thesis_sources(self, plan: QueryPlan) -> list[ThesisSource]:
        if self.source_finder is None:
            return []
        try:
            return await self.source_finder.find(plan)
        except Exception as e:
            logger.warning("Thesis source search failed", error=str(e))
            return []

    async def _discover(self, plan: QueryPlan) -> tuple[DiscoveryResult, list[ThesisSource]]:
        """Candidate discovery and thesis citations, concurrently."""
        discovery, sources = await asyncio.gather(self.discovery.discover(plan), self._find_thesis_sources(plan))
        return discovery, sources

    async def _mark_failed(self, thesis_id: int | None) -> None:
        """Best-effort transition to ``failed``; never raises."""
        if self.store is None or thesis_id is None:
            return
        try:
            await self.store.fail_thesis(thesis_id)
        except Exception as e:
            logger.error("Could not mark thesis failed", thesis_id=thesis_id, error=str(e))

    async def _finish(
        self,
        thesis_id: int | None,
        plan: QueryPlan,
        summary: str,
        stats: DiscoveryStats,
        thesis_sources: list[ThesisSource],
        companies: list[Candidate],
    ) -> CompleteEvent:
        themes = [t.to_dict() for t in plan.adjacent_themes]
        if self.store is not None and thesis_id is not None:
            for source in thesis_sources:
                content = f"{source.title}: {source.description}" if source.description else source.title
                await self.store.add_finding(thesis_id, content, source.url)
            await self.store.complete_thesis(
                thesis_id,
                summary=summary,
                public_comps=list(plan.public_comps),
                adjacent_themes=themes,
                discovery_stats=stats,
            )
        return CompleteEvent(
            companies=companies,
            public_comps=list(plan.public_comps),
            summary=summary,
            adjacent_themes=themes,
            discovery_stats=stats,
            thesis_sources=thesis_sources,
            thesis_id=thesis_id,
        )

    async def run(self, thesis: str) -> AsyncIterator[PipelineEvent]:
        """Run one thesis and stream its events.

        Model and search stages run as background tasks; while one is in
        flight a progress event is emitted every heartbeat interval.
        Enrichment reports after each batch. A consumer that stops iterating
        early cancels the stage in flight.

        Args:
            thesis: Non-empty investment thesis.

        Yields:
            Progress and company events, then exactly one CompleteEvent or
            ErrorEvent.

        Raises:
            ValidationError: If the thesis is blank (before any event).
        """
        text = (thesis or "").strip()
        if not text:
            raise ValidationError("Thesis must be a non-empty string")

        run_id = generate_id("run")
        thesis_id: int | None = None
        stage = Stage.PLANNING
        logger.info("Starting thesis run", run_id=run_id, thesis=text[:80])

        try:
            if self.store is not None:
                thesis_id = await self.store.create_thesis(text)
                await self.store.start_thesis(thesis_id)

            yield ProgressEvent("Analyzing thesis and generating search terms...")
            planning = self._start(run_id, stage, self.planner.run(text))
            try:
                while not await self._settled(planning):
                    yield ProgressEvent("Still generating search terms...")
            finally:
                planning.cancel()
            plan = planning.result()
            yield ProgressEvent(
                f"Generated {len(plan.search_queries)} search queries "
                f"and {len(plan.adjacent_themes)} adjacent themes"
            )

            stage = Stage.DISCOVERING
            source_names = [s.name for s in self.discovery.available_sources]
            yield ProgressEvent(
                f"Searching {', '.join(source_names)}..." if source_names else "No discovery sources configured"
            )
            discovering = self._start(run_id, stage, self._discover(plan))
            try:
                while not await self._settled(discovering):
                    yield ProgressEvent("Still searching for companies...")
            finally:
                discovering.cancel()
            discovery, thesis_sources = discovering.result()
            candidates = discovery.candidates
            stats = discovery.stats
            yield ProgressEvent(
                f"Found {len(candidates)} companies "
                f"({stats.direct_thesis} direct, {stats.adjacent_themes} via adjacent themes)"
            )

            needs_enrichment = sum(1 for c in candidates if c.needs_enrichment)
            if self.enricher is not None and self.enricher.client.available and needs_enrichment:
                stage = Stage.ENRICHING
                yield ProgressEvent(f"Verifying {needs_enrichment} web-discovered companies...")
                async for step in self.enricher.iter_enrich(candidates):
                    if step.result is None:
                        yield ProgressEvent(f"Checked {step.done} of {step.total} companies")
                        continue
                    candidates = step.result.candidates
                    yield ProgressEvent(
                        f"Verified {step.result.verified} companies, dropped {step.result.dropped} out of scope"
                    )

            if not candidates:
                if source_names:
                    summary = f"No early-stage companies found for: {text}"
                else:
                    summary = "No companies found. Please ensure CRUNCHBASE_API_KEY and BRAVE_API_KEY are set."
                yield ProgressEvent("No companies found.")
                yield await self._finish(thesis_id, plan, summary, stats, thesis_sources, [])
                return

            stage = Stage.FILTERING
            yield ProgressEvent(f"Quick-scoring {len(candidates)} companies for thesis fit...")
            filtering = self._start(run_id, stage, self.fit_filter.run(text, candidates=candidates, plan=plan))
            try:
                while not await self._settled(filtering):
                    yield ProgressEvent("Still scoring companies...")
            finally:
                filtering.cancel()
            filtered = filtering.result()
            yield ProgressEvent(f"{len(filtered.candidates)} companies passed fit filter")

            if not filtered.candidates:
                summary = f"Searched {len(candidates)} companies but none were a strong fit for: {text}"
                yield await self._finish(thesis_id, plan, summary, stats, thesis_sources, [])
                return

            stage = Stage.ANALYZING
            top_n = min(len(filtered.candidates), self.settings.MAX_ANALYZED_COMPANIES)
            yield ProgressEvent(f"Deep analyzing top {top_n} companies...")
            analyzing = self._start(
                run_id, stage, self.analyst.run(text, candidates=filtered.candidates, plan=plan)
            )
            try:
                while not await self._settled(analyzing):
                    yield ProgressEvent(f"Still analyzing {top_n} companies...")
            finally:
                analyzing.cancel()
            analysis = analyzing.result()

            for company in analysis.companies:
                if self.store is not None and thesis_id is not None:
                    await self.store.add_company(thesis_id, company)
                yield CompanyEvent(company)

            stage = Stage.COMPLETE
            summary = analysis.synthesis or plan.thesis_summary
            logger.info("Thesis run complete", run_id=run_id, thesis_id=thesis_id, companies=len(analysis.companies))
            yield await self._finish(thesis_id, plan, summary, stats, thesis_sources, analysis.ranked)

        except Exception as e:
            logger.error("Thesis run failed", run_id=run_id, stage=stage.value, error=str(e), exc_info=True)
            with log_context(run_id=run_id, stage=Stage.FAILED.value):
                await self._mark_failed(thesis_id)
            yield ErrorEvent(str(e))

    async def close(self) -> None:
        """Close the LLM client and provider clients."""
        for client in [self.llm, *self._clients]:
            close = getattr(client, "close", None)
            if close is not None:
                await close()


def build_pipeline(
    settings: Settings,
    store: ThesisStore | None = None,
    llm: LLMClient | None = None,
) -> ResearchPipeline:
    """Wire a pipeline from settings.

    Args:
        settings: Application settings.
        store: Optional initialized store.
        llm: Optional LLM client; defaults to Anthropic.

    Returns:
        A ResearchPipeline owning its provider clients.

    Raises:
        ConfigurationError: If no LLM client is given and no key is set.
    """
    if llm is None:
        llm = AnthropicClient(api_key=settings.require_llm())

    crunchbase = CrunchbaseClient(settings.search_provider_key, timeout=settings.HTTP_TIMEOUT_SECONDS)
    brave = BraveSearchClient(settings.web_search_key, timeout=settings.HTTP_TIMEOUT_SECONDS)

    return ResearchPipeline(
        settings=settings,
        llm=llm,
        sources=[
            CrunchbaseSource(crunchbase),
            BraveWebSource(brave, freshness=settings.WEB_FRESHNESS, signal_templates=settings.WEB_SIGNAL_QUERIES),
        ],
        enricher=CandidateEnricher(crunchbase, batch_size=settings.ENRICHMENT_BATCH_SIZE),
        source_finder=ThesisSourceFinder(brave),
        store=store,
        clients=[crunchbase, brave],
    )
