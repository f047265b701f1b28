import pytest

from sca_core.models import (
    Card,
    CardNetwork,
    CardProduct,
    RateType,
    RewardTier,
    RewardsSummary,
    SpendingCategory,
)


def _tier(rate, rate_type, *cats):
    return RewardTier(id="t", categories=tuple(cats), rate=rate, rate_type=rate_type)


def test_effective_cashback_rate_per_unit():
    assert _tier(6, RateType.CASHBACK, SpendingCategory.DINING).effective_cashback_rate == 6
    assert _tier(10, RateType.POINTS, SpendingCategory.DINING).effective_cashback_rate == pytest.approx(2.5)
    assert _tier(3, RateType.MILES, SpendingCategory.TRAVEL).effective_cashback_rate == pytest.approx(5.4)


def test_rate_description():
    assert _tier(6, RateType.CASHBACK).rate_description == "6% cashback"
    assert _tier(10, RateType.POINTS).rate_description == "10x points"
    assert _tier(1.2, RateType.MILES).rate_description == "1.2 mpd"
    assert _tier(3, RateType.MILES).rate_description == "3 mpd"


def test_reward_for_amount():
    assert _tier(6, RateType.CASHBACK).reward_for(100) == pytest.approx(6.0)
    assert _tier(10, RateType.POINTS).reward_for(100) == pytest.approx(2.5)
    assert _tier(3, RateType.MILES).reward_for(100) == pytest.approx(5.4)
    assert _tier(6, RateType.CASHBACK).reward_for(0) == 0


@pytest.mark.parametrize(
    "raw", ["online_shopping", "onlineShopping", "online-shopping", "ONLINE_SHOPPING"]
)
def test_category_parse_spellings(raw):
    assert SpendingCategory.parse(raw) is SpendingCategory.ONLINE_SHOPPING


def test_category_parse_rejects_unknown():
    with pytest.raises(ValueError):
        SpendingCategory.parse("gambling")


def test_category_display_name():
    assert SpendingCategory.DEPARTMENT_STORE.display_name == "Department Store"
    assert SpendingCategory.DINING.display_name == "Dining"


def test_best_rate_first_tier_wins_ties():
    first = RewardTier("first", (SpendingCategory.DINING,), 4, RateType.CASHBACK)
    second = RewardTier("second", (SpendingCategory.DINING,), 16, RateType.POINTS)
    product = CardProduct(
        id="p", name="P", issuer="X", full_name="X P", network=CardNetwork.VISA,
        reward_tiers=(first, second),
    )
    assert product.best_rate(SpendingCategory.DINING) is first
    assert product.best_rate(SpendingCategory.TRAVEL) is None
    assert product.general_rate() is None


def test_card_match_status():
    assert Card("Live Fresh", "DBS", product_id="dbs", match_confidence=0.9).match_status == "Matched (90%)"
    assert Card("Live Fresh", "DBS", product_id="dbs", match_confidence=0.5).match_status == "Possible match (50%)"
    assert Card("Mystery", "Unknown").match_status == "Unknown card"


def test_card_is_matched_needs_product():
    assert not Card("X", "Y", product_id=None, match_confidence=1.0).is_matched
    assert Card("X", "Y", product_id="p", match_confidence=0.8).is_matched


def test_card_knows_label_case_insensitive():
    card = Card("Live Fresh", "DBS", raw_names=["DBS Live Fresh Visa"])
    assert card.knows_label("dbs live fresh visa")
    assert not card.knows_label("DBS Altitude")


def test_empty_summary_is_fully_optimized():
    assert RewardsSummary().optimization_rate == 1.0
