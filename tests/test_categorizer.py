import pathlib

import pytest

from categorizer.rules import KeywordRule, RulesError, apply_rules, compile_rules, parse_rules
from categorizer.service import MerchantCategorizer
from sca_core.models import SpendingCategory as C

EXAMPLE_RULES = pathlib.Path(__file__).resolve().parents[1] / "config" / "merchant_keywords.example.yaml"


@pytest.mark.parametrize(
    "merchant,expected",
    [
        ("Starbucks", C.DINING),
        ("NTUC FairPrice", C.GROCERIES),
        ("Din Tai Fung", C.DINING),
        ("  DIN TAI FUNG  ", C.DINING),
        ("Grab", C.TRANSPORT),
        ("GrabFood", C.DINING),
        ("Shopee", C.ONLINE_SHOPPING),
        ("Shell Station", C.FUEL),
        ("Singapore Airlines", C.TRAVEL),
        ("National University Hospital", C.HEALTHCARE),
        ("Takashimaya", C.DEPARTMENT_STORE),
    ],
)
def test_builtin_table(merchant, expected):
    assert MerchantCategorizer().categorize(merchant) is expected


def test_longest_keyword_wins():
    # "national university" (education) is shorter than the hospital keyword
    category, keyword = MerchantCategorizer().match("National University Hospital")
    assert category is C.HEALTHCARE
    assert keyword == "national university hospital"


def test_no_match_is_general():
    svc = MerchantCategorizer()
    assert svc.match("Qqq Zzz") == (C.GENERAL, None)
    assert svc.categorize("") is C.GENERAL


def test_equal_length_earlier_category_wins():
    svc = MerchantCategorizer(keywords=[(C.GROCERIES, ["abc"]), (C.DINING, ["xyz"])])
    assert svc.categorize("abc xyz") is C.GROCERIES
    svc = MerchantCategorizer(keywords=[(C.DINING, ["xyz"]), (C.GROCERIES, ["abc"])])
    assert svc.categorize("abc xyz") is C.DINING


def test_deterministic():
    svc = MerchantCategorizer()
    results = {svc.categorize("Ya Kun Kaya Toast @ Changi Airport") for _ in range(20)}
    assert len(results) == 1


def test_keyword_rule_longest_match():
    rule = KeywordRule(C.DINING, ("cafe", "ps cafe"))
    assert rule.longest_match("ps cafe dempsey") == "ps cafe"
    assert rule.longest_match("hawker centre") is None


def test_compile_rules_lowercases_and_parses_names():
    rules = compile_rules([("online-shopping", ["Shopee", ""])])
    assert rules[0].category is C.ONLINE_SHOPPING
    assert rules[0].keywords == ("shopee",)
    assert apply_rules("shopee mall", rules) == (C.ONLINE_SHOPPING, "shopee")


def test_parse_rules_from_dict():
    rules = parse_rules({"categories": [{"category": "fuel", "keywords": ["esso"]}]})
    assert len(rules) == 1 and rules[0].category is C.FUEL
    assert parse_rules({}) == ()


def test_yaml_override_replaces_builtin_table():
    svc = MerchantCategorizer(rules_path=str(EXAMPLE_RULES))
    assert svc.get_rule_count() == 4
    assert svc.categorize("Starbucks Reserve") is C.DINING
    assert svc.categorize("Amazon SG") is C.ONLINE_SHOPPING
    assert svc.categorize("Din Tai Fung") is C.GENERAL


def test_missing_rules_file_keeps_builtin(tmp_path):
    svc = MerchantCategorizer(rules_path=str(tmp_path / "nope.yaml"))
    assert svc.get_rule_count() == 12
    assert svc.categorize("Din Tai Fung") is C.DINING


def test_keywords_for_and_membership():
    svc = MerchantCategorizer()
    assert "fairprice" in svc.keywords_for(C.GROCERIES)
    assert svc.keywords_for(C.GENERAL) == []
    assert svc.is_merchant_in_category("Starbucks", C.DINING)
    assert not svc.is_merchant_in_category("Starbucks", C.TRAVEL)


@pytest.mark.parametrize(
    "cfg",
    [
        {"categories": [{"category": "coffee", "keywords": ["starbucks"]}]},
        {"categories": [{"keywords": ["starbucks"]}]},
        {"categories": ["dining"]},
        ["not", "a", "mapping"],
    ],
)
def test_parse_rules_rejects_malformed(cfg):
    with pytest.raises(RulesError):
        parse_rules(cfg)


def test_malformed_rules_file_raises_rules_error(tmp_path):
    unknown = tmp_path / "unknown.yaml"
    unknown.write_text("categories:\n  - category: coffee\n    keywords: [starbucks]\n", encoding="utf-8")
    with pytest.raises(RulesError):
        MerchantCategorizer(rules_path=str(unknown))

    broken = tmp_path / "broken.yaml"
    broken.write_text("categories: [unclosed\n", encoding="utf-8")
    with pytest.raises(RulesError):
        MerchantCategorizer(rules_path=str(broken))
