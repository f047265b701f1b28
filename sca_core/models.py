from __future__ import annotations
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

MATCH_THRESHOLD = 0.8

# effective-cashback multipliers, used only to compare tiers across units
POINTS_TO_CASHBACK = 0.25
MILES_TO_CASHBACK = 1.8

# dollar value of one mile, used to price a spend
MILE_VALUE = 0.018


class SpendingCategory(str, Enum):
    # member order is the classifier's and recommender's iteration order
    DINING = "dining"
    GROCERIES = "groceries"
    TRANSPORT = "transport"
    TRAVEL = "travel"
    ONLINE_SHOPPING = "online_shopping"
    ENTERTAINMENT = "entertainment"
    FUEL = "fuel"
    UTILITIES = "utilities"
    INSURANCE = "insurance"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    DEPARTMENT_STORE = "department_store"
    CONTACTLESS = "contactless"
    GENERAL = "general"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, raw: str) -> "SpendingCategory":
        """Accept snake_case, kebab-case and camelCase spellings."""
        key = re.sub(r"[^a-z]", "", str(raw or "").lower())
        for member in cls:
            if member.value.replace("_", "") == key:
                return member
        raise ValueError(f"Unknown spending category: {raw!r}")


class RateType(str, Enum):
    CASHBACK = "cashback"
    POINTS = "points"
    MILES = "miles"


class CardNetwork(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    UNIONPAY = "unionpay"


def _format_rate(value: float) -> str:
    if value == round(value):
        return f"{value:.0f}"
    return f"{value:.1f}"


@dataclass(frozen=True)
class RewardTier:
    id: str
    categories: Tuple[SpendingCategory, ...]
    rate: float
    rate_type: RateType
    monthly_cap: Optional[float] = None
    min_spend: Optional[float] = None
    conditions: Optional[str] = None

    @property
    def effective_cashback_rate(self) -> float:
        """Rate expressed as a cashback percentage, for cross-unit ranking."""
        if self.rate_type is RateType.POINTS:
            return self.rate * POINTS_TO_CASHBACK
        if self.rate_type is RateType.MILES:
            return self.rate * MILES_TO_CASHBACK
        return self.rate

    @property
    def rate_description(self) -> str:
        if self.rate_type is RateType.POINTS:
            return f"{_format_rate(self.rate)}x points"
        if self.rate_type is RateType.MILES:
            return f"{_format_rate(self.rate)} mpd"
        return f"{_format_rate(self.rate)}% cashback"

    def reward_for(self, amount: float) -> float:
        """Dollar value earned on `amount` at this tier."""
        if self.rate_type is RateType.POINTS:
            return amount * (self.rate * POINTS_TO_CASHBACK / 100.0)
        if self.rate_type is RateType.MILES:
            return amount * self.rate * MILE_VALUE
        return amount * (self.rate / 100.0)

    def applies_to(self, category: SpendingCategory) -> bool:
        return category in self.categories


@dataclass(frozen=True)
class CardProduct:
    id: str
    name: str
    issuer: str
    full_name: str
    network: CardNetwork
    country: str = "SG"
    annual_fee: float = 0.0
    annual_fee_waived: bool = False
    min_income: float = 0.0
    reward_tiers: Tuple[RewardTier, ...] = ()
    aliases: Tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return f"{self.issuer} {self.name}"

    def best_rate(self, category: SpendingCategory) -> Optional[RewardTier]:
        """Highest effective-rate tier covering `category`; first one wins ties."""
        best: Optional[RewardTier] = None
        for tier in self.reward_tiers:
            if not tier.applies_to(category):
                continue
            if best is None or tier.effective_cashback_rate > best.effective_cashback_rate:
                best = tier
        return best

    def general_rate(self) -> Optional[RewardTier]:
        for tier in self.reward_tiers:
            if tier.applies_to(SpendingCategory.GENERAL):
                return tier
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Card:
    name: str
    issuer: str
    product_id: Optional[str] = None
    raw_names: List[str] = field(default_factory=list)
    first_seen: datetime = field(default_factory=utcnow)
    last_used: datetime = field(default_factory=utcnow)
    transaction_count: int = 1
    is_active: bool = True
    match_confidence: float = 0.0
    id: str = field(default_factory=generate_id)

    @property
    def display_name(self) -> str:
        return f"{self.issuer} {self.name}"

    @property
    def is_matched(self) -> bool:
        return self.product_id is not None and self.match_confidence >= MATCH_THRESHOLD

    @property
    def match_status(self) -> str:
        pct = int(self.match_confidence * 100)
        if self.is_matched:
            return f"Matched ({pct}%)"
        if self.match_confidence > 0:
            return f"Possible match ({pct}%)"
        return "Unknown card"

    def knows_label(self, raw_name: str) -> bool:
        wanted = raw_name.lower()
        return any(name.lower() == wanted for name in self.raw_names)


@dataclass(frozen=True)
class Transaction:
    merchant_name: str
    amount: float
    currency: str
    card_name: str
    card_id: Optional[str]
    category: SpendingCategory
    optimal_card_id: Optional[str] = None
    actual_reward: float = 0.0
    optimal_reward: float = 0.0
    rewards_delta: float = 0.0
    optimal_card_name: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)
    is_optimal: bool = True
    id: str = field(default_factory=generate_id)


@dataclass(frozen=True)
class MatchResult:
    product: CardProduct
    confidence: float
    matched_on: str


@dataclass(frozen=True)
class RankedReward:
    product: CardProduct
    tier: RewardTier
    reward: float


@dataclass(frozen=True)
class OptimizationResult:
    optimal_product: Optional[CardProduct] = None
    optimal_tier: Optional[RewardTier] = None
    used_product: Optional[CardProduct] = None
    used_tier: Optional[RewardTier] = None
    actual_reward: float = 0.0
    optimal_reward: float = 0.0
    rewards_delta: float = 0.0
    is_optimal: bool = True
    rankings: Tuple[RankedReward, ...] = ()


@dataclass(frozen=True)
class Recommendation:
    category: SpendingCategory
    product: CardProduct
    tier: RewardTier


@dataclass
class CategorySummary:
    category: SpendingCategory
    total_spend: float = 0.0
    missed_rewards: float = 0.0
    transaction_count: int = 0


@dataclass
class RewardsSummary:
    total_spend: float = 0.0
    total_actual_rewards: float = 0.0
    total_optimal_rewards: float = 0.0
    total_missed_rewards: float = 0.0
    transaction_count: int = 0
    wrong_card_count: int = 0
    category_breakdown: Dict[SpendingCategory, CategorySummary] = field(
        default_factory=dict
    )

    @property
    def optimization_rate(self) -> float:
        if self.transaction_count == 0:
            return 1.0
        return (self.transaction_count - self.wrong_card_count) / self.transaction_count


@dataclass(frozen=True)
class WrongCardAlert:
    merchant: str
    amount: float
    used_card_name: str
    optimal_card_name: str
    rewards_delta: float
    optimal_rate_description: str


@dataclass(frozen=True)
class NewCardDetected:
    card_name: str
