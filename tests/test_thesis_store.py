"""
Tests for the SQLite thesis store.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from scout.exceptions import StoreError
from scout.store.thesis_store import ThesisStore
from scout.types import Candidate, DiscoveryStats, SourceCitation, ThesisStatus


def _scored(make_candidate: Callable[..., Candidate], name: str, *scores: int) -> Candidate:
    relevance, recency, team = scores
    return make_candidate(
        name,
        thesis_relevance=relevance,
        recency=recency,
        founding_team=team,
        website=f"https://{name.lower()}.com",
        fit_score=8,
        citations=[SourceCitation(type="crunchbase", url=f"https://www.crunchbase.com/organization/{name.lower()}")],
    )


class TestThesisLifecycle:
    """Tests for run status transitions."""

    @pytest.mark.asyncio
    async def test_create_and_complete(self, store: ThesisStore) -> None:
        thesis_id = await store.create_thesis("autonomous trucking")

        detail = await store.get_thesis(thesis_id)
        assert detail is not None
        assert detail.thesis.status == ThesisStatus.PENDING

        await store.start_thesis(thesis_id)

        detail = await store.get_thesis(thesis_id)
        assert detail is not None
        assert detail.thesis.status == ThesisStatus.RUNNING
        assert detail.thesis.completed_at is None

        await store.complete_thesis(
            thesis_id,
            summary="Trucks drive themselves.",
            public_comps=["TSLA"],
            adjacent_themes=[{"theme": "fleet software", "order": "2nd", "rationale": ""}],
            discovery_stats=DiscoveryStats(direct_thesis=3, adjacent_themes=1),
        )

        detail = await store.get_thesis(thesis_id)
        assert detail is not None
        assert detail.thesis.status == ThesisStatus.COMPLETE
        assert detail.thesis.completed_at is not None
        assert detail.thesis.summary == "Trucks drive themselves."
        assert detail.thesis.public_comps == ["TSLA"]
        assert detail.thesis.adjacent_themes[0]["theme"] == "fleet software"
        assert detail.thesis.discovery_stats == {"direct_thesis": 3, "adjacent_themes": 1}

    @pytest.mark.asyncio
    async def test_start_requires_pending(self, store: ThesisStore) -> None:
        thesis_id = await store.create_thesis("robots")
        await store.start_thesis(thesis_id)

        with pytest.raises(StoreError):
            await store.start_thesis(thesis_id)
        with pytest.raises(StoreError):
            await store.start_thesis(9999)

    @pytest.mark.asyncio
    async def test_fail_thesis(self, store: ThesisStore) -> None:
        thesis_id = await store.create_thesis("robots")

        await store.fail_thesis(thesis_id)

        detail = await store.get_thesis(thesis_id)
        assert detail is not None
        assert detail.thesis.status == ThesisStatus.FAILED
        assert detail.thesis.completed_at is not None

    @pytest.mark.asyncio
    async def test_unknown_thesis(self, store: ThesisStore) -> None:
        assert await store.get_thesis(999) is None
        assert await store.delete_thesis(999) is False


class TestCompanies:
    """Tests for company rows."""

    @pytest.mark.asyncio
    async def test_total_score_is_generated_and_ranked(
        self,
        store: ThesisStore,
        make_candidate: Callable[..., Candidate],
    ) -> None:
        thesis_id = await store.create_thesis("autonomous trucking")
        await store.add_company(thesis_id, _scored(make_candidate, "Mid", 5, 5, 5))
        await store.add_company(thesis_id, _scored(make_candidate, "TruckCo", 7, 8, 6))
        await store.add_company(thesis_id, _scored(make_candidate, "Low", 1, 2, 3))

        detail = await store.get_thesis(thesis_id)

        assert detail is not None
        assert [c.name for c in detail.companies] == ["TruckCo", "Mid", "Low"]
        assert [c.total_score for c in detail.companies] == [21, 15, 6]
        assert detail.thesis.company_count == 3
        truckco = detail.companies[0]
        assert truckco.website == "https://truckco.com"
        assert truckco.source == "crunchbase"
        assert truckco.fit_score == 8
        assert truckco.sources[0]["type"] == "crunchbase"

    @pytest.mark.asyncio
    async def test_delete_cascades(
        self,
        store: ThesisStore,
        make_candidate: Callable[..., Candidate],
    ) -> None:
        thesis_id = await store.create_thesis("autonomous trucking")
        await store.add_company(thesis_id, _scored(make_candidate, "TruckCo", 7, 8, 6))
        await store.add_finding(thesis_id, "Patent: lidar fusion", "https://patents.google.com/p/1")

        assert await store.delete_thesis(thesis_id) is True

        async with store.db.execute("SELECT COUNT(*) FROM companies") as cursor:
            assert (await cursor.fetchone())[0] == 0
        async with store.db.execute("SELECT COUNT(*) FROM findings") as cursor:
            assert (await cursor.fetchone())[0] == 0

    @pytest.mark.asyncio
    async def test_findings(self, store: ThesisStore) -> None:
        thesis_id = await store.create_thesis("robots")
        await store.add_finding(thesis_id, "First", "https://arxiv.org/abs/1")
        await store.add_finding(thesis_id, "Second note")

        detail = await store.get_thesis(thesis_id)

        assert detail is not None
        assert [(f.content, f.source) for f in detail.findings] == [
            ("First", "https://arxiv.org/abs/1"),
            ("Second note", None),
        ]
        assert detail.to_dict()["findings"][0]["content"] == "First"


class TestListing:
    """Tests for paginated listing."""

    @pytest.mark.asyncio
    async def test_pagination_and_counts(
        self,
        store: ThesisStore,
        make_candidate: Callable[..., Candidate],
    ) -> None:
        ids = [await store.create_thesis(f"thesis {i}") for i in range(5)]
        await store.add_company(ids[4], _scored(make_candidate, "A", 5, 5, 5))
        await store.add_company(ids[4], _scored(make_candidate, "B", 5, 5, 5))

        first = await store.list_theses(page=1, limit=2)
        last = await store.list_theses(page=3, limit=2)

        assert first.total == 5
        assert first.pages == 3
        assert [t.id for t in first.theses] == [ids[4], ids[3]]
        assert first.theses[0].company_count == 2
        assert first.theses[1].company_count == 0
        assert [t.id for t in last.theses] == [ids[0]]
        assert first.to_dict()["pagination"] == {"page": 1, "limit": 2, "total": 5, "pages": 3}

    @pytest.mark.asyncio
    async def test_empty_listing(self, store: ThesisStore) -> None:
        result = await store.list_theses()

        assert result.theses == []
        assert result.total == 0
        assert result.pages == 0


class TestStoreSetup:
    """Tests for store initialization."""

    @pytest.mark.asyncio
    async def test_uninitialized_store_raises(self, temp_dir: Path) -> None:
        store = ThesisStore(temp_dir / "never.db")

        with pytest.raises(StoreError):
            await store.create_thesis("robots")

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, temp_dir: Path) -> None:
        store = ThesisStore(temp_dir / "nested" / "dir" / "scout.db")
        await store.init()
        try:
            assert (temp_dir / "nested" / "dir").is_dir()
        finally:
            await store.close()
