"""
Partner preference matching.

A partner's preferences are a set of optional filters (asset classes,
geographies, deal-size bounds, minimum score). A deal matches when every
filter the partner actually specified passes; unspecified filters never block.
Deal-side data that is missing cannot be evaluated and likewise never blocks.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence, TypeVar

Amount = Optional[float]

# Display range keys used by intake forms and preference pickers.
RANGE_KEYS: dict[str, tuple[Amount, Amount]] = {
    "under_500k": (None, 500_000.0),
    "500k_2m": (500_000.0, 2_000_000.0),
    "2m_10m": (2_000_000.0, 10_000_000.0),
    "10m_50m": (10_000_000.0, 50_000_000.0),
    "over_50m": (50_000_000.0, None),
}

_SUFFIXES = {"K": 1_000.0, "M": 1_000_000.0, "B": 1_000_000_000.0}
_RANGE_SPLIT = re.compile(r"\s*(?:-|–|\bto\b)\s*", re.IGNORECASE)

_US_ALIASES = {"us", "u.s.", "usa", "u.s.a.", "united states", "united states of america"}


def parse_currency_to_number(value: Any) -> Amount:
    """Parse ``1000000``, ``"$1,000,000"``, ``"$2.5M"``, ``"500k"`` into a float."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = str(value).replace("$", "").replace(",", "").strip().upper().rstrip("+").strip()
    if not cleaned:
        return None

    multiplier = 1.0
    if cleaned[-1] in _SUFFIXES:
        multiplier = _SUFFIXES[cleaned[-1]]
        cleaned = cleaned[:-1].strip()

    try:
        number = float(cleaned)
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return number * multiplier


def parse_amount_bounds(value: Any) -> tuple[Amount, Amount] | None:
    """Reduce an amount representation to ``(lower, upper)`` bounds.

    Single amounts give equal bounds, range keys and ``"$1M - $5M"`` give both,
    ``"10M+"`` is open above and ``under_500k`` is open below. Unparseable
    input returns None.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return (float(value), float(value))

    text = str(value).strip()
    if not text:
        return None

    key = text.lower().replace(" ", "_")
    if key in RANGE_KEYS:
        return RANGE_KEYS[key]

    if text.endswith("+"):
        low = parse_currency_to_number(text)
        return (low, None) if low is not None else None

    parts = [p for p in _RANGE_SPLIT.split(text) if p]
    if len(parts) == 2:
        low = parse_currency_to_number(parts[0])
        high = parse_currency_to_number(parts[1])
        if low is None or high is None:
            return None
        return (min(low, high), max(low, high))

    amount = parse_currency_to_number(text)
    if amount is None:
        return None
    return (amount, amount)


def format_currency(amount: float) -> str:
    def _trim(n: float) -> str:
        return f"{n:.1f}".removesuffix(".0")

    if amount >= 1_000_000_000:
        return f"${_trim(amount / 1_000_000_000)}B"
    if amount >= 1_000_000:
        return f"${_trim(amount / 1_000_000)}M"
    if amount >= 1_000:
        return f"${amount / 1_000:.0f}K"
    return f"${amount:.0f}"


def format_amount_bounds(bounds: tuple[Amount, Amount]) -> str:
    low, high = bounds
    if low is not None and high is not None:
        if low == high:
            return format_currency(low)
        return f"{format_currency(low)} - {format_currency(high)}"
    if low is not None:
        return f"{format_currency(low)}+"
    if high is not None:
        return f"under {format_currency(high)}"
    return "N/A"


@dataclass(frozen=True)
class MatchCriteria:
    asset_classes: tuple[str, ...] = ()
    geographies: tuple[str, ...] = ()
    min_deal_size: Any = None
    max_deal_size: Any = None
    min_score: int | None = None

    @classmethod
    def from_preferences(cls, preferences: Any) -> "MatchCriteria":
        """Build from a preferences row or any object exposing the same attributes."""

        return cls(
            asset_classes=tuple(getattr(preferences, "asset_classes", None) or ()),
            geographies=tuple(getattr(preferences, "geographies", None) or ()),
            min_deal_size=getattr(preferences, "min_deal_size", None),
            max_deal_size=getattr(preferences, "max_deal_size", None),
            min_score=getattr(preferences, "min_score", None),
        )


@dataclass(frozen=True)
class DealSummary:
    company_name: str = ""
    funding_amount: Any = None
    asset_classes: tuple[str, ...] = ()
    geographies: tuple[str, ...] = ()
    overall_score: int | None = None

    @classmethod
    def from_deal(cls, deal: Any) -> "DealSummary":
        company = getattr(deal, "company", None)
        return cls(
            company_name=getattr(company, "name", "") or "",
            funding_amount=getattr(deal, "funding_amount", None),
            asset_classes=tuple(getattr(deal, "asset_classes", None) or ()),
            geographies=tuple(getattr(deal, "geographies", None) or ()),
            overall_score=getattr(deal, "overall_score", None),
        )


@dataclass
class MatchResult:
    matches: bool
    match_reasons: list[str] = field(default_factory=list)
    mismatches: list[str] = field(default_factory=list)


def _normalize_label(value: str) -> str:
    return " ".join(str(value).split()).casefold()


def _normalize_geography(value: str) -> str:
    label = _normalize_label(value)
    return "us" if label in _US_ALIASES else label


def _overlap(deal_values: Iterable[str], wanted: Iterable[str], normalize) -> list[str]:
    wanted_keys = {normalize(w) for w in wanted if str(w).strip()}
    return [v for v in deal_values if normalize(v) in wanted_keys]


def _size_bounds(criteria: MatchCriteria) -> tuple[Amount, Amount]:
    min_bounds = parse_amount_bounds(criteria.min_deal_size)
    max_bounds = parse_amount_bounds(criteria.max_deal_size)
    minimum = min_bounds[0] if min_bounds else None
    maximum = None
    if max_bounds:
        maximum = max_bounds[1] if max_bounds[1] is not None else max_bounds[0]
    return minimum, maximum


def check_match(preferences: Any, deal: DealSummary) -> MatchResult:
    """Evaluate ``deal`` against a partner's preferences.

    ``preferences`` may be None (the partner receives every deal), a
    :class:`MatchCriteria`, or a preferences row.
    """

    if preferences is None:
        return MatchResult(matches=True)

    criteria = (
        preferences
        if isinstance(preferences, MatchCriteria)
        else MatchCriteria.from_preferences(preferences)
    )
    reasons: list[str] = []
    mismatches: list[str] = []

    if criteria.asset_classes and deal.asset_classes:
        common = _overlap(deal.asset_classes, criteria.asset_classes, _normalize_label)
        if common:
            reasons.append(f"Asset class: {', '.join(common)}")
        else:
            mismatches.append("Asset class mismatch")

    minimum, maximum = _size_bounds(criteria)
    deal_bounds = parse_amount_bounds(deal.funding_amount)
    if (minimum is not None or maximum is not None) and deal_bounds:
        low = deal_bounds[0] if deal_bounds[0] is not None else 0.0
        high = deal_bounds[1] if deal_bounds[1] is not None else math.inf
        size_ok = True
        if minimum is not None and high < minimum:
            mismatches.append(f"Below minimum deal size ({format_currency(minimum)})")
            size_ok = False
        if maximum is not None and low > maximum:
            mismatches.append(f"Above maximum deal size ({format_currency(maximum)})")
            size_ok = False
        if size_ok:
            reasons.append(f"Deal size: {format_amount_bounds(deal_bounds)}")

    if criteria.geographies and deal.geographies:
        common = _overlap(deal.geographies, criteria.geographies, _normalize_geography)
        if common:
            reasons.append(f"Geography: {', '.join(common)}")
        else:
            mismatches.append("Geography mismatch")

    if criteria.min_score is not None and deal.overall_score is not None:
        if deal.overall_score >= criteria.min_score:
            reasons.append(f"Score: {deal.overall_score} (minimum {criteria.min_score})")
        else:
            mismatches.append(f"Below minimum score ({criteria.min_score})")

    return MatchResult(matches=not mismatches, match_reasons=reasons, mismatches=mismatches)


T = TypeVar("T")


def sort_by_match_quality(
    preferences: Any, items: Sequence[T], summary_of=DealSummary.from_deal
) -> list[tuple[T, MatchResult]]:
    """Pair each item with its match result, matches first, then by number of reasons."""

    scored = [(item, check_match(preferences, summary_of(item))) for item in items]
    scored.sort(key=lambda pair: (not pair[1].matches, -len(pair[1].match_reasons)))
    return scored
