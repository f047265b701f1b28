import copy

import pytest

from catalog.loader import Catalog, LoadError, load_catalog, load_catalog_or_empty
from sca_core.models import RateType, SpendingCategory


def test_bundled_catalog_loads(sg_catalog):
    assert len(sg_catalog) == 12
    assert sg_catalog.country == "SG"
    for product in sg_catalog:
        assert product.general_rate() is not None, product.id


def test_lookup(sg_catalog):
    citi = sg_catalog.lookup("citi-cash-back")
    assert citi is not None
    assert citi.display_name == "Citi Cash Back"
    assert sg_catalog.lookup("nope") is None
    assert sg_catalog.lookup(None) is None


def test_by_issuer_case_insensitive(sg_catalog):
    ids = {p.id for p in sg_catalog.by_issuer("dbs")}
    assert ids == {"dbs-live-fresh", "dbs-altitude-visa", "dbs-womans-world"}


def test_best_rate_and_general_rate(sg_catalog):
    citi = sg_catalog.lookup("citi-cash-back")
    tier = sg_catalog.best_rate(citi, SpendingCategory.DINING)
    assert tier.rate == 6 and tier.rate_type is RateType.CASHBACK
    assert sg_catalog.best_rate(citi, SpendingCategory.TRAVEL) is None
    assert sg_catalog.general_rate(citi).rate == pytest.approx(0.25)


def test_camel_case_keys(catalog_payload):
    catalog = Catalog.from_payload(catalog_payload)
    beta = catalog.lookup("beta-points")
    assert beta.full_name == "Beta Points Card"
    assert beta.best_rate(SpendingCategory.ONLINE_SHOPPING).rate_type is RateType.POINTS


def test_duplicate_id_rejected(catalog_payload):
    payload = copy.deepcopy(catalog_payload)
    payload["cards"].append(copy.deepcopy(payload["cards"][0]))
    with pytest.raises(LoadError):
        Catalog.from_payload(payload)


def test_two_general_tiers_rejected(catalog_payload):
    payload = copy.deepcopy(catalog_payload)
    payload["cards"][0]["reward_tiers"].append(
        {"id": "a-base-2", "categories": ["general"], "rate": 1, "rate_type": "cashback"}
    )
    with pytest.raises(LoadError):
        Catalog.from_payload(payload)


def test_negative_rate_rejected(catalog_payload):
    payload = copy.deepcopy(catalog_payload)
    payload["cards"][0]["reward_tiers"][0]["rate"] = -1
    with pytest.raises(LoadError):
        Catalog.from_payload(payload)


def test_unknown_category_rejected(catalog_payload):
    payload = copy.deepcopy(catalog_payload)
    payload["cards"][0]["reward_tiers"][0]["categories"] = ["gambling"]
    with pytest.raises(LoadError):
        Catalog.from_payload(payload)


def test_missing_file_raises(tmp_path):
    with pytest.raises(LoadError):
        load_catalog(tmp_path / "missing.yaml")


def test_malformed_yaml_raises(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("cards: [unclosed\n", encoding="utf-8")
    with pytest.raises(LoadError):
        load_catalog(p)


def test_wrong_shape_raises(tmp_path):
    p = tmp_path / "shape.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(LoadError):
        load_catalog(p)


def test_json_catalog_is_accepted(tmp_path):
    p = tmp_path / "cards.json"
    p.write_text(
        '{"version": "j", "cards": [{"id": "x", "name": "X", "issuer": "Y", "network": "visa",'
        ' "rewardTiers": [{"categories": ["general"], "rate": 1, "rateType": "cashback"}]}]}',
        encoding="utf-8",
    )
    catalog = load_catalog(p)
    assert catalog.version == "j"
    assert catalog.lookup("x").full_name == "Y X"


def test_load_catalog_or_empty_degrades(tmp_path):
    catalog = load_catalog_or_empty(tmp_path / "missing.yaml")
    assert len(catalog) == 0
    assert list(catalog) == []


@pytest.mark.parametrize(
    "mutate",
    [
        lambda p: p["cards"][0]["reward_tiers"][0].update(rate="abc"),
        lambda p: p["cards"][0]["reward_tiers"][0].update(monthly_cap=[1]),
        lambda p: p["cards"][0]["reward_tiers"][0].update(categories=5),
        lambda p: p["cards"][0].update(annual_fee="free"),
        lambda p: p["cards"][0].update(reward_tiers=5),
        lambda p: p["cards"][0].update(aliases=5),
        lambda p: p["cards"][0]["reward_tiers"].append("general"),
    ],
)
def test_from_payload_bad_fields_raise_load_error(catalog_payload, mutate):
    payload = copy.deepcopy(catalog_payload)
    mutate(payload)
    with pytest.raises(LoadError):
        Catalog.from_payload(payload)


def test_single_string_alias_is_accepted(catalog_payload):
    catalog_payload["cards"][0]["aliases"] = "Alpha Visa"
    assert Catalog.from_payload(catalog_payload).lookup("alpha-cash").aliases == ("Alpha Visa",)
