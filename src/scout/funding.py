"""
Funding-round classification.

Maps raw provider funding-type strings (Crunchbase ``last_funding_type``
vocabulary, or free text such as "Series A" / "pre-seed") to a closed
FundingStage. This is the only place that normalizes funding types.
"""

from __future__ import annotations

import re

from scout.types import FundingStage

EARLY_STAGE_TYPES = frozenset({
    "pre_seed",
    "seed",
    "angel",
    "grant",
    "convertible_note",
    "series_a",
    "non_equity_assistance",
    "equity_crowdfunding",
    "product_crowdfunding",
})

LATE_STAGE_TYPES = frozenset({
    "series_b",
    "series_c",
    "series_d",
    "series_e",
    "series_f",
    "series_g",
    "series_h",
    "series_i",
    "series_j",
    "series_unknown",
    "private_equity",
    "post_ipo_equity",
    "post_ipo_debt",
    "post_ipo_secondary",
    "debt_financing",
    "secondary_market",
    "corporate_round",
    "initial_coin_offering",
    "ipo",
})

_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_funding_type(raw: str | None) -> str:
    """Lowercase and map spaces/hyphens to underscores."""
    if not raw:
        return ""
    return _SEPARATORS.sub("_", raw.strip().lower())


def classify_funding_stage(raw: str | None) -> FundingStage:
    """Classify a raw funding-round type.

    Args:
        raw: Provider string such as "seed", "Series C" or "post-ipo-equity".

    Returns:
        FundingStage.EARLY, FundingStage.LATE or FundingStage.UNKNOWN.
    """
    normalized = normalize_funding_type(raw)
    if not normalized:
        return FundingStage.UNKNOWN
    if normalized in EARLY_STAGE_TYPES:
        return FundingStage.EARLY
    if normalized in LATE_STAGE_TYPES or normalized.startswith("post_ipo"):
        return FundingStage.LATE
    return FundingStage.UNKNOWN


def is_inactive(operating_status: str | None) -> bool:
    """True when a status is present and is anything other than "active"."""
    if not operating_status:
        return False
    return normalize_funding_type(operating_status) != "active"
