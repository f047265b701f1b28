# catalog/loader.py
"""
Card catalog: the read-only set of known card products and their reward tiers.

The catalog file is YAML (JSON is accepted too, since yaml.safe_load reads it):

    version: "2025.1"
    last_updated: "2025-01-15"
    country: SG
    cards:
      - id: citi-cash-back
        name: Cash Back
        issuer: Citi
        full_name: Citi Cash Back Card
        network: mastercard
        aliases: [Citi Cashback, Citi Cash Back Mastercard]
        reward_tiers:
          - id: citi-cb-dining
            categories: [dining, groceries, fuel]
            rate: 6
            rate_type: cashback

camelCase keys (fullName, rewardTiers, rateType, ...) are accepted as well.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import yaml

from sca_core.models import (
    CardNetwork,
    CardProduct,
    RateType,
    RewardTier,
    SpendingCategory,
)

log = logging.getLogger("catalog")


class LoadError(Exception):
    """Catalog file missing or malformed."""


def _field(rec: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in rec and rec[name] is not None:
            return rec[name]
    return default


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _parse_tier(rec: Mapping[str, Any], product_id: str, index: int) -> RewardTier:
    if not isinstance(rec, Mapping):
        raise LoadError(f"Tier {index} of {product_id} must be a mapping")
    tier_id = str(_field(rec, "id", default=f"{product_id}-tier-{index}"))
    raw_categories = _field(rec, "categories", default=[])
    if isinstance(raw_categories, str):
        raw_categories = [raw_categories]
    if not raw_categories:
        raise LoadError(f"Tier {tier_id} of {product_id} has no categories")
    try:
        categories = tuple(SpendingCategory.parse(c) for c in raw_categories)
        rate_type = RateType(str(_field(rec, "rate_type", "rateType", default="")).lower())
    except (TypeError, ValueError) as e:
        raise LoadError(f"Tier {tier_id} of {product_id}: {e}") from e

    try:
        rate = float(_field(rec, "rate", default=0.0))
        monthly_cap = _optional_float(_field(rec, "monthly_cap", "monthlyCap"))
        min_spend = _optional_float(_field(rec, "min_spend", "minSpend"))
    except (TypeError, ValueError) as e:
        raise LoadError(f"Tier {tier_id} of {product_id}: bad number: {e}") from e
    if rate < 0:
        raise LoadError(f"Tier {tier_id} of {product_id} has negative rate {rate}")

    return RewardTier(
        id=tier_id,
        categories=categories,
        rate=rate,
        rate_type=rate_type,
        monthly_cap=monthly_cap,
        min_spend=min_spend,
        conditions=_field(rec, "conditions"),
    )


def _parse_product(rec: Mapping[str, Any], country: str) -> CardProduct:
    if not isinstance(rec, Mapping):
        raise LoadError(f"Card record must be a mapping, got {type(rec).__name__}")
    product_id = _field(rec, "id")
    if not product_id:
        raise LoadError("Card record without an id")
    product_id = str(product_id)

    try:
        network = CardNetwork(str(_field(rec, "network", default="")).lower())
    except ValueError as e:
        raise LoadError(f"Card {product_id}: {e}") from e

    raw_tiers = _field(rec, "reward_tiers", "rewardTiers", default=[])
    if not isinstance(raw_tiers, list):
        raise LoadError(f"Card {product_id}: reward tiers must be a list")
    tiers = tuple(_parse_tier(t, product_id, i) for i, t in enumerate(raw_tiers))
    general = [t for t in tiers if t.applies_to(SpendingCategory.GENERAL)]
    if len(general) > 1:
        raise LoadError(f"Card {product_id} has {len(general)} general tiers")

    try:
        annual_fee = float(_field(rec, "annual_fee", "annualFee", default=0.0))
        min_income = float(_field(rec, "min_income", "minIncome", default=0.0))
    except (TypeError, ValueError) as e:
        raise LoadError(f"Card {product_id}: bad number: {e}") from e

    aliases = _field(rec, "aliases", default=[])
    if isinstance(aliases, str):
        aliases = [aliases]
    if not isinstance(aliases, list):
        raise LoadError(f"Card {product_id}: aliases must be a list")

    name = str(_field(rec, "name", default=product_id))
    issuer = str(_field(rec, "issuer", default=""))
    return CardProduct(
        id=product_id,
        name=name,
        issuer=issuer,
        full_name=str(_field(rec, "full_name", "fullName", default=f"{issuer} {name}")),
        network=network,
        country=str(_field(rec, "country", default=country)),
        annual_fee=annual_fee,
        annual_fee_waived=bool(_field(rec, "annual_fee_waived", "annualFeeWaived", default=False)),
        min_income=min_income,
        reward_tiers=tiers,
        aliases=tuple(str(a) for a in aliases),
    )


class Catalog:
    """Immutable product set; build once and share by reference."""

    def __init__(
        self,
        products: Sequence[CardProduct] = (),
        version: str = "",
        country: str = "",
        last_updated: str = "",
    ):
        self._products: Tuple[CardProduct, ...] = tuple(products)
        self._by_id: Dict[str, CardProduct] = {}
        for p in self._products:
            if p.id in self._by_id:
                raise LoadError(f"Duplicate card id: {p.id}")
            self._by_id[p.id] = p
        self.version = version
        self.country = country
        self.last_updated = last_updated

    @classmethod
    def empty(cls) -> "Catalog":
        return cls()

    @classmethod
    def from_payload(cls, payload: Any) -> "Catalog":
        if not isinstance(payload, Mapping):
            raise LoadError("Catalog root must be a mapping")
        cards = payload.get("cards")
        if not isinstance(cards, list):
            raise LoadError("Catalog is missing a 'cards' list")
        country = str(payload.get("country") or "")
        products = [_parse_product(rec, country) for rec in cards]
        return cls(
            products,
            version=str(payload.get("version") or ""),
            country=country,
            last_updated=str(_field(payload, "last_updated", "lastUpdated", default="")),
        )

    @property
    def products(self) -> Tuple[CardProduct, ...]:
        return self._products

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self) -> Iterator[CardProduct]:
        return iter(self._products)

    def lookup(self, product_id: Optional[str]) -> Optional[CardProduct]:
        if product_id is None:
            return None
        return self._by_id.get(product_id)

    def by_issuer(self, issuer: str) -> List[CardProduct]:
        wanted = issuer.lower()
        return [p for p in self._products if p.issuer.lower() == wanted]

    def best_rate(
        self, product: CardProduct, category: SpendingCategory
    ) -> Optional[RewardTier]:
        return product.best_rate(category)

    def general_rate(self, product: CardProduct) -> Optional[RewardTier]:
        return product.general_rate()


def load_catalog(path: Path | str) -> Catalog:
    """Parse the catalog file. Raises LoadError when absent or malformed."""
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f)
    except OSError as e:
        raise LoadError(f"Catalog not readable: {p}") from e
    except yaml.YAMLError as e:
        raise LoadError(f"Catalog not parseable: {p}") from e

    try:
        catalog = Catalog.from_payload(payload)
    except (TypeError, ValueError) as e:
        raise LoadError(f"Catalog malformed: {p}: {e}") from e
    log.info(
        "Loaded %d card products (version=%s country=%s)",
        len(catalog),
        catalog.version or "?",
        catalog.country or "?",
    )
    return catalog


def load_catalog_or_empty(path: Path | str) -> Catalog:
    """Like load_catalog, but degrade to an empty catalog on LoadError."""
    try:
        return load_catalog(path)
    except LoadError as e:
        log.warning("%s; continuing with an empty catalog", e)
        return Catalog.empty()
