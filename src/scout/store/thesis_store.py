"""
Thesis store.

SQLite persistence for thesis runs with three tables:
- theses: one row per run (status, summary, public comps, themes, stats)
- companies: one row per analyzed company, ``total_score`` generated
- findings: thesis-level citations and notes

Only the pipeline orchestrator writes here. There is no cross-stage
transaction: every company row is committed as it is written, so a run that
fails midway leaves a valid partial record.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import orjson

from scout.exceptions import StoreError
from scout.logging import get_logger
from scout.types import Candidate, DiscoveryStats, Thesis, ThesisStatus, utc_now

logger = get_logger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS theses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        thesis TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL,
        completed_at TEXT,
        summary TEXT,
        public_comps TEXT,
        adjacent_themes TEXT,
        discovery_stats TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS companies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        thesis_id INTEGER NOT NULL REFERENCES theses(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        description TEXT,
        writeup TEXT,
        thesis_relevance INTEGER,
        recency INTEGER,
        founding_team INTEGER,
        total_score INTEGER GENERATED ALWAYS AS (thesis_relevance + recency + founding_team) STORED,
        website TEXT,
        x_url TEXT,
        crunchbase_url TEXT,
        founded_year INTEGER,
        funding_total REAL,
        source TEXT,
        fit_score INTEGER,
        sources TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS findings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        thesis_id INTEGER NOT NULL REFERENCES theses(id) ON DELETE CASCADE,
        content TEXT NOT NULL,
        source TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_companies_thesis ON companies(thesis_id)",
    "CREATE INDEX IF NOT EXISTS idx_findings_thesis ON findings(thesis_id)",
    "CREATE INDEX IF NOT EXISTS idx_theses_created ON theses(created_at DESC)",
)


def _dumps(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def _loads(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        return default


def _parse_ts(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


@dataclass
class StoredCompany:
    """A persisted company row."""

    id: int
    thesis_id: int
    name: str
    description: str | None
    writeup: str | None
    thesis_relevance: int | None
    recency: int | None
    founding_team: int | None
    total_score: int | None
    website: str | None
    x_url: str | None
    crunchbase_url: str | None
    founded_year: int | None
    funding_total: float | None
    source: str | None
    fit_score: int | None
    sources: list[dict[str, Any]] = field(default_factory=list)
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "thesis_id": self.thesis_id,
            "name": self.name,
            "description": self.description,
            "writeup": self.writeup,
            "thesis_relevance": self.thesis_relevance,
            "recency": self.recency,
            "founding_team": self.founding_team,
            "total_score": self.total_score,
            "website": self.website,
            "x_url": self.x_url,
            "crunchbase_url": self.crunchbase_url,
            "founded_year": self.founded_year,
            "funding_total": self.funding_total,
            "source": self.source,
            "fit_score": self.fit_score,
            "sources": self.sources,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Finding:
    """A persisted thesis-level finding (citation or note)."""

    id: int
    thesis_id: int
    content: str
    source: str | None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "thesis_id": self.thesis_id,
            "content": self.content,
            "source": self.source,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class ThesisDetail:
    """A thesis with its companies (ranked) and findings."""

    thesis: Thesis
    companies: list[StoredCompany]
    findings: list[Finding]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.thesis.to_dict(),
            "companies": [c.to_dict() for c in self.companies],
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass
class ThesisPage:
    """One page of the thesis listing."""

    theses: list[Thesis]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "theses": [t.to_dict() for t in self.theses],
            "pagination": {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages},
        }


class ThesisStore:
    """Async SQLite store for thesis runs."""

    def __init__(self, db_path: str | Path) -> None:
        """Initialize the store.

        Args:
            db_path: SQLite database file (``":memory:"`` for tests).
        """
        self.db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Open the connection and create the schema."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA foreign_keys = ON")
        for statement in SCHEMA:
            await self._db.execute(statement)
        await self._db.commit()

        logger.info("Thesis store initialized", db_path=self.db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreError("ThesisStore not initialized. Call init() first.")
        return self._db

    async def create_thesis(self, text: str) -> int:
        """Insert a new run in ``pending`` status.

        Returns:
            The new thesis id.
        """
        cursor = await self.db.execute(
            "INSERT INTO theses (thesis, status, created_at) VALUES (?, ?, ?)",
            (text, ThesisStatus.PENDING.value, utc_now().isoformat()),
        )
        await self.db.commit()
        thesis_id = cursor.lastrowid
        if thesis_id is None:
            raise StoreError("Failed to create thesis", context={"thesis": text[:80]})
        logger.debug("Created thesis", thesis_id=thesis_id)
        return thesis_id

    async def start_thesis(self, thesis_id: int) -> None:
        """Move a ``pending`` run to ``running``.

        Raises:
            StoreError: If the thesis does not exist or has already started.
        """
        cursor = await self.db.execute(
            "UPDATE theses SET status = ? WHERE id = ? AND status = ?",
            (ThesisStatus.RUNNING.value, thesis_id, ThesisStatus.PENDING.value),
        )
        await self.db.commit()
        if cursor.rowcount != 1:
            raise StoreError("Thesis is not pending", context={"thesis_id": thesis_id})

    async def add_company(self, thesis_id: int, company: Candidate) -> int:
        """Persist one analyzed company.

        Returns:
            The new company row id.
        """
        cursor = await self.db.execute(
            """
            INSERT INTO companies (
                thesis_id, name, description, writeup,
                thesis_relevance, recency, founding_team,
                website, x_url, crunchbase_url, founded_year, funding_total,
                source, fit_score, sources, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                thesis_id,
                company.name,
                company.description,
                company.writeup,
                company.thesis_relevance,
                company.recency,
                company.founding_team,
                company.website,
                company.x_url,
                company.crunchbase_url,
                company.founded_year,
                company.funding_total,
                company.source.value,
                company.fit_score,
                _dumps([c.to_dict() for c in company.citations]),
                utc_now().isoformat(),
            ),
        )
        await self.db.commit()
        return cursor.lastrowid or 0

    async def add_finding(self, thesis_id: int, content: str, source: str | None = None) -> int:
        """Persist one thesis-level finding."""
        cursor = await self.db.execute(
            "INSERT INTO findings (thesis_id, content, source, created_at) VALUES (?, ?, ?, ?)",
            (thesis_id, content, source, utc_now().isoformat()),
        )
        await self.db.commit()
        return cursor.lastrowid or 0

    async def complete_thesis(
        self,
        thesis_id: int,
        summary: str,
        public_comps: list[str],
        adjacent_themes: list[dict[str, Any]] | None = None,
        discovery_stats: DiscoveryStats | None = None,
    ) -> None:
        """Final update for a successful run."""
        await self.db.execute(
            """
            UPDATE theses
            SET status = ?, completed_at = ?, summary = ?, public_comps = ?,
                adjacent_themes = ?, discovery_stats = ?
            WHERE id = ?
            """,
            (
                ThesisStatus.COMPLETE.value,
                utc_now().isoformat(),
                summary,
                _dumps(public_comps),
                _dumps(adjacent_themes or []),
                _dumps((discovery_stats or DiscoveryStats()).to_dict()),
                thesis_id,
            ),
        )
        await self.db.commit()

    async def fail_thesis(self, thesis_id: int) -> None:
        """Mark a run failed."""
        await self.db.execute(
            "UPDATE theses SET status = ?, completed_at = ? WHERE id = ?",
            (ThesisStatus.FAILED.value, utc_now().isoformat(), thesis_id),
        )
        await self.db.commit()

    def _row_to_thesis(self, row: aiosqlite.Row) -> Thesis:
        keys = row.keys()
        return Thesis(
            id=row["id"],
            text=row["thesis"],
            status=ThesisStatus(row["status"]),
            created_at=_parse_ts(row["created_at"]) or utc_now(),
            completed_at=_parse_ts(row["completed_at"]),
            summary=row["summary"],
            public_comps=_loads(row["public_comps"], []),
            adjacent_themes=_loads(row["adjacent_themes"], []),
            discovery_stats=_loads(row["discovery_stats"], {}),
            company_count=row["company_count"] if "company_count" in keys else 0,
        )

    def _row_to_company(self, row: aiosqlite.Row) -> StoredCompany:
        return StoredCompany(
            id=row["id"],
            thesis_id=row["thesis_id"],
            name=row["name"],
            description=row["description"],
            writeup=row["writeup"],
            thesis_relevance=row["thesis_relevance"],
            recency=row["recency"],
            founding_team=row["founding_team"],
            total_score=row["total_score"],
            website=row["website"],
            x_url=row["x_url"],
            crunchbase_url=row["crunchbase_url"],
            founded_year=row["founded_year"],
            funding_total=row["funding_total"],
            source=row["source"],
            fit_score=row["fit_score"],
            sources=_loads(row["sources"], []),
            created_at=_parse_ts(row["created_at"]),
        )

    async def get_thesis(self, thesis_id: int) -> ThesisDetail | None:
        """Load a run with companies ranked by total score.

        Returns:
            ThesisDetail or None if the id is unknown.
        """
        async with self.db.execute(
            """
            SELECT t.*, (SELECT COUNT(*) FROM companies c WHERE c.thesis_id = t.id) AS company_count
            FROM theses t WHERE t.id = ?
            """,
            (thesis_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None

        async with self.db.execute(
            "SELECT * FROM companies WHERE thesis_id = ? ORDER BY total_score DESC, id ASC",
            (thesis_id,),
        ) as cursor:
            companies = [self._row_to_company(r) for r in await cursor.fetchall()]

        async with self.db.execute(
            "SELECT * FROM findings WHERE thesis_id = ? ORDER BY created_at ASC, id ASC",
            (thesis_id,),
        ) as cursor:
            findings = [
                Finding(
                    id=r["id"],
                    thesis_id=r["thesis_id"],
                    content=r["content"],
                    source=r["source"],
                    created_at=_parse_ts(r["created_at"]),
                )
                for r in await cursor.fetchall()
            ]

        return ThesisDetail(thesis=self._row_to_thesis(row), companies=companies, findings=findings)

    async def list_theses(self, page: int = 1, limit: int = 10) -> ThesisPage:
        """List runs, newest first, with company counts."""
        page = max(1, page)
        limit = max(1, limit)

        async with self.db.execute(
            """
            SELECT t.*, COUNT(c.id) AS company_count
            FROM theses t
            LEFT JOIN companies c ON c.thesis_id = t.id
            GROUP BY t.id
            ORDER BY t.created_at DESC, t.id DESC
            LIMIT ? OFFSET ?
            """,
            (limit, (page - 1) * limit),
        ) as cursor:
            theses = [self._row_to_thesis(r) for r in await cursor.fetchall()]

        async with self.db.execute("SELECT COUNT(*) AS total FROM theses") as cursor:
            row = await cursor.fetchone()
        total = row["total"] if row else 0

        return ThesisPage(theses=theses, page=page, limit=limit, total=total)

    async def delete_thesis(self, thesis_id: int) -> bool:
        """Delete a run; its companies and findings cascade.

        Returns:
            True if a row was deleted.
        """
        cursor = await self.db.execute("DELETE FROM theses WHERE id = ?", (thesis_id,))
        await self.db.commit()
        return cursor.rowcount > 0
