import sys
import pathlib
from datetime import datetime, timezone

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from catalog.loader import Catalog, load_catalog  # noqa: E402
from notify.dispatcher import CollectingNotifier  # noqa: E402
from storage.portfolio import InMemoryPortfolio  # noqa: E402

BUNDLED_CATALOG = ROOT / "data" / "sg_cards.yaml"

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def small_payload():
    """Three products covering cashback, points and miles."""
    return {
        "version": "test",
        "country": "SG",
        "cards": [
            {
                "id": "alpha-cash",
                "name": "Cash",
                "issuer": "Alpha",
                "full_name": "Alpha Cash Card",
                "network": "visa",
                "aliases": ["Alpha Cashback Visa"],
                "reward_tiers": [
                    {"id": "a-dining", "categories": ["dining"], "rate": 5, "rate_type": "cashback"},
                    {"id": "a-base", "categories": ["general"], "rate": 0.5, "rate_type": "cashback"},
                ],
            },
            {
                "id": "beta-points",
                "name": "Points",
                "issuer": "Beta",
                "fullName": "Beta Points Card",
                "network": "mastercard",
                "rewardTiers": [
                    {"id": "b-online", "categories": ["onlineShopping"], "rate": 10, "rateType": "points"},
                    {"id": "b-base", "categories": ["general"], "rate": 1, "rateType": "points"},
                ],
            },
            {
                "id": "gamma-miles",
                "name": "Miles",
                "issuer": "Gamma",
                "full_name": "Gamma Miles Card",
                "network": "amex",
                "reward_tiers": [
                    {"id": "g-travel", "categories": ["travel"], "rate": 3, "rate_type": "miles"},
                    {"id": "g-base", "categories": ["general"], "rate": 1.2, "rate_type": "miles"},
                ],
            },
        ],
    }


@pytest.fixture
def small_catalog():
    return Catalog.from_payload(small_payload())


@pytest.fixture(scope="session")
def sg_catalog():
    return load_catalog(BUNDLED_CATALOG)


@pytest.fixture
def portfolio():
    return InMemoryPortfolio()


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def catalog_payload():
    return small_payload()
