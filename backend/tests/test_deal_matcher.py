import pytest

from dealflow.services.deal_matcher import (
    DealSummary,
    MatchCriteria,
    check_match,
    format_amount_bounds,
    parse_amount_bounds,
    parse_currency_to_number,
    sort_by_match_quality,
)


def _deal(**overrides):
    values = dict(
        company_name="Acme Lending",
        funding_amount="$2.5M",
        asset_classes=("Consumer Loans",),
        geographies=("United States",),
        overall_score=85,
    )
    values.update(overrides)
    return DealSummary(**values)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (1_000_000, 1_000_000.0),
        ("$1,000,000", 1_000_000.0),
        ("$2.5M", 2_500_000.0),
        ("500k", 500_000.0),
        ("1B", 1_000_000_000.0),
        ("", None),
        ("n/a", None),
        (None, None),
    ],
)
def test_parse_currency_to_number(raw, expected):
    assert parse_currency_to_number(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("500k_2m", (500_000.0, 2_000_000.0)),
        ("under_500k", (None, 500_000.0)),
        ("over_50m", (50_000_000.0, None)),
        ("$1M - $5M", (1_000_000.0, 5_000_000.0)),
        ("10M+", (10_000_000.0, None)),
        ("$750K", (750_000.0, 750_000.0)),
        (3_000_000, (3_000_000.0, 3_000_000.0)),
        ("tbd", None),
    ],
)
def test_parse_amount_bounds(raw, expected):
    assert parse_amount_bounds(raw) == expected


def test_format_amount_bounds():
    assert format_amount_bounds((500_000.0, 2_000_000.0)) == "$500K - $2M"
    assert format_amount_bounds((2_500_000.0, 2_500_000.0)) == "$2.5M"
    assert format_amount_bounds((10_000_000.0, None)) == "$10M+"


def test_absent_preferences_match_everything_without_reasons():
    result = check_match(None, _deal())
    assert result.matches is True
    assert result.match_reasons == []


def test_empty_preferences_match():
    result = check_match(MatchCriteria(), _deal())
    assert result.matches is True
    assert result.match_reasons == []


@pytest.mark.parametrize("score,expected", [(65, False), (70, True), (75, True)])
def test_min_score_alone_decides_regardless_of_other_fields(score, expected):
    prefs = MatchCriteria(min_score=70)
    deal = _deal(overall_score=score, asset_classes=("Equipment",), geographies=("Canada",))
    result = check_match(prefs, deal)
    assert result.matches is expected
    if expected:
        assert result.match_reasons == [f"Score: {score} (minimum 70)"]
    else:
        assert result.mismatches == ["Below minimum score (70)"]


def test_all_specified_filters_must_pass():
    prefs = MatchCriteria(asset_classes=("consumer loans",), geographies=("Canada",))
    result = check_match(prefs, _deal())
    assert result.matches is False
    assert "Asset class: Consumer Loans" in result.match_reasons
    assert "Geography mismatch" in result.mismatches


def test_asset_class_and_geography_are_case_insensitive_with_us_aliases():
    prefs = MatchCriteria(asset_classes=("CONSUMER LOANS",), geographies=("USA",))
    result = check_match(prefs, _deal())
    assert result.matches is True
    assert result.match_reasons == ["Asset class: Consumer Loans", "Geography: United States"]


def test_deal_size_bounds():
    below = check_match(MatchCriteria(min_deal_size="$5M"), _deal())
    assert below.matches is False
    assert below.mismatches == ["Below minimum deal size ($5M)"]

    above = check_match(MatchCriteria(max_deal_size="1M"), _deal())
    assert above.matches is False
    assert above.mismatches == ["Above maximum deal size ($1M)"]

    inside = check_match(MatchCriteria(min_deal_size="500k_2m", max_deal_size="2m_10m"), _deal())
    assert inside.matches is True
    assert inside.match_reasons == ["Deal size: $2.5M"]


def test_deal_range_overlapping_preference_matches():
    result = check_match(MatchCriteria(min_deal_size="$1M"), _deal(funding_amount="500k_2m"))
    assert result.matches is True
    assert result.match_reasons == ["Deal size: $500K - $2M"]


def test_missing_deal_data_never_blocks():
    prefs = MatchCriteria(
        asset_classes=("Equipment",), geographies=("Canada",), min_deal_size="$1M", min_score=90
    )
    deal = DealSummary(company_name="Unscored Co")
    result = check_match(prefs, deal)
    assert result.matches is True
    assert result.match_reasons == []


def test_preferences_row_like_objects_are_accepted():
    class Prefs:
        asset_classes = ["Consumer Loans"]
        geographies = None
        min_deal_size = None
        max_deal_size = None
        min_score = 80

    result = check_match(Prefs(), _deal())
    assert result.matches is True
    assert "Score: 85 (minimum 80)" in result.match_reasons


def test_sort_by_match_quality_puts_best_matches_first():
    prefs = MatchCriteria(min_score=70, geographies=("US",))
    deals = [
        _deal(company_name="Low", overall_score=50),
        _deal(company_name="Partial", geographies=()),
        _deal(company_name="Best"),
    ]
    ranked = sort_by_match_quality(prefs, deals, summary_of=lambda d: d)
    assert [d.company_name for d, _ in ranked] == ["Best", "Partial", "Low"]
    assert ranked[-1][1].matches is False
