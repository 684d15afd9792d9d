"""
Pydantic schemas for model output.

Model JSON is untrusted: each stage validates the extracted object against
one of these payloads before using it. Validators are lenient about shape
(aliases, stringly-typed numbers, keyed-by-name maps) and strict about
meaning (unknown theme orders collapse to a known value, scores are ints).
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from scout.types import FitType, ThemeOrder

_ORDER_ALIASES = {
    "2nd": ThemeOrder.SECOND,
    "second": ThemeOrder.SECOND,
    "2nd_order": ThemeOrder.SECOND,
    "3rd": ThemeOrder.THIRD,
    "third": ThemeOrder.THIRD,
    "3rd_order": ThemeOrder.THIRD,
    "picks_shovels": ThemeOrder.PICKS_SHOVELS,
    "picks_and_shovels": ThemeOrder.PICKS_SHOVELS,
    "infrastructure": ThemeOrder.PICKS_SHOVELS,
    "parallel": ThemeOrder.PARALLEL,
}

_FIT_TYPE_ALIASES = {
    "direct": FitType.DIRECT,
    "2nd": FitType.SECOND_ORDER,
    "2nd_order": FitType.SECOND_ORDER,
    "second_order": FitType.SECOND_ORDER,
    "3rd": FitType.THIRD_ORDER,
    "3rd_order": FitType.THIRD_ORDER,
    "third_order": FitType.THIRD_ORDER,
}


def _coerce_score(value: Any) -> int | None:
    """Turn 7, 7.4, "7" or "7/10" into an int; anything else into None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(round(value))
    if isinstance(value, str):
        head = value.strip().split("/")[0].strip()
        try:
            return int(round(float(head)))
        except ValueError:
            return None
    return None


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class ThemePayload(BaseModel):
    """One adjacent theme as returned by the planner."""

    theme: str = Field(validation_alias=AliasChoices("theme", "name"))
    order: ThemeOrder = ThemeOrder.PARALLEL
    rationale: str = ""

    @field_validator("order", mode="before")
    @classmethod
    def normalize_order(cls, v: Any) -> ThemeOrder:
        if isinstance(v, ThemeOrder):
            return v
        key = str(v or "").strip().lower().replace("-", "_").replace(" ", "_").replace("&", "and")
        return _ORDER_ALIASES.get(key, ThemeOrder.PARALLEL)


class QueryPlanPayload(BaseModel):
    """Planner output."""

    primary_keywords: list[str] = Field(min_length=1)
    adjacent_themes: list[ThemePayload] = Field(default_factory=list)
    industry_categories: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("industry_categories", "crunchbase_categories"),
    )
    search_queries: list[str] = Field(default_factory=list)
    public_comps: list[str] = Field(default_factory=list)
    thesis_summary: str = ""

    @field_validator("primary_keywords", "industry_categories", "search_queries", "public_comps", mode="before")
    @classmethod
    def clean_strings(cls, v: Any) -> list[str]:
        return _string_list(v)

    @field_validator("adjacent_themes", mode="before")
    @classmethod
    def themes_from_strings(cls, v: Any) -> list[Any]:
        """Older prompts returned bare theme strings."""
        if v is None:
            return []
        return [{"theme": t} if isinstance(t, str) else t for t in v]


class FitScorePayload(BaseModel):
    """Fit score for one company."""

    name: str
    fit_score: int | None = Field(default=None, validation_alias=AliasChoices("fit_score", "score"))
    fit_type: FitType | None = None
    reason: str = Field(default="", validation_alias=AliasChoices("reason", "fit_reason", "justification"))

    @field_validator("name", "reason", mode="before")
    @classmethod
    def text_or_empty(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("fit_score", mode="before")
    @classmethod
    def coerce_score(cls, v: Any) -> int | None:
        return _coerce_score(v)

    @field_validator("fit_type", mode="before")
    @classmethod
    def normalize_fit_type(cls, v: Any) -> FitType | None:
        if v is None or isinstance(v, FitType):
            return v
        return _FIT_TYPE_ALIASES.get(str(v).strip().lower().replace("-", "_").replace(" ", "_"))


class FitFilterPayload(BaseModel):
    """Fit filter output.

    Accepts either ``{"scores": [{"name": ..., ...}]}`` or an object keyed by
    company name: ``{"Acme": {"fit_score": 8, ...}}``.
    """

    scores: list[FitScorePayload] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def keyed_by_name(cls, data: Any) -> Any:
        if not isinstance(data, dict) or isinstance(data.get("scores"), list):
            return data
        scores = []
        for name, entry in data.items():
            if isinstance(entry, dict):
                scores.append({"name": name, **entry})
            elif isinstance(entry, (int, float, str)):
                scores.append({"name": name, "fit_score": entry})
        return {"scores": scores}

    @field_validator("scores", mode="before")
    @classmethod
    def drop_invalid_entries(cls, v: Any) -> list[FitScorePayload]:
        """Validate entries one at a time so a malformed entry costs only itself."""
        if not isinstance(v, list):
            return []
        entries = []
        for item in v:
            try:
                entries.append(FitScorePayload.model_validate(item))
            except ValidationError:
                continue
        return entries


class AnalyzedCompanyPayload(BaseModel):
    """Deep analysis output for one company."""

    name: str
    description: str | None = None
    writeup: str = ""
    thesis_relevance: int | None = None
    recency: int | None = None
    founding_team: int | None = None
    website: str | None = None
    founded_year: int | None = None
    funding_total: float | None = Field(
        default=None, validation_alias=AliasChoices("funding_total", "funding_total_usd")
    )
    crunchbase_url: str | None = None
    x_url: str | None = None

    @field_validator("thesis_relevance", "recency", "founding_team", "founded_year", mode="before")
    @classmethod
    def coerce_int(cls, v: Any) -> int | None:
        return _coerce_score(v)

    @field_validator("funding_total", mode="before")
    @classmethod
    def coerce_funding(cls, v: Any) -> float | None:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return float(v)
        return None

    @field_validator("writeup", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> str:
        return v or ""


class AnalysisPayload(BaseModel):
    """Deep analysis output."""

    analyzed_companies: list[AnalyzedCompanyPayload] = Field(
        default_factory=list,
        validation_alias=AliasChoices("analyzed_companies", "companies"),
    )
    synthesis: str = ""

    @field_validator("synthesis", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> str:
        return v or ""
