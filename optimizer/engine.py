# optimizer/engine.py
"""
Reward optimizer.

Ranks every card in a portfolio for a spending category by the dollar value
of its applicable tier (best category tier, else the general tier), and
measures what the card actually used left on the table.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from catalog.loader import Catalog
from sca_core.models import (
    CardProduct,
    CategorySummary,
    OptimizationResult,
    RankedReward,
    Recommendation,
    RewardTier,
    RewardsSummary,
    SpendingCategory,
    Transaction,
)

log = logging.getLogger("optimizer")

# below one cent the used card counts as optimal
OPTIMAL_EPSILON = 0.01

# spend used only to rank cards per category
REFERENCE_AMOUNT = 100.0

RECOMMENDATION_EXCLUDED = (SpendingCategory.GENERAL, SpendingCategory.CONTACTLESS)


def reward_for(amount: float, tier: RewardTier) -> float:
    return tier.reward_for(amount)


def applicable_tier(
    product: CardProduct, category: SpendingCategory
) -> Optional[RewardTier]:
    return product.best_rate(category) or product.general_rate()


class RewardOptimizer:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def _resolve(self, product_ids: Iterable[Optional[str]]) -> List[CardProduct]:
        seen = set()
        products: List[CardProduct] = []
        for pid in product_ids:
            if pid is None or pid in seen:
                continue
            product = self.catalog.lookup(pid)
            if product is None:
                continue
            seen.add(pid)
            products.append(product)
        return products

    def rank(
        self, category: SpendingCategory, amount: float, products: Sequence[CardProduct]
    ) -> List[RankedReward]:
        rankings: List[RankedReward] = []
        for product in products:
            tier = applicable_tier(product, category)
            if tier is None:
                continue
            rankings.append(RankedReward(product, tier, reward_for(amount, tier)))
        # stable: equal rewards keep portfolio order
        rankings.sort(key=lambda r: r.reward, reverse=True)
        return rankings

    def find_optimal_card(
        self,
        category: SpendingCategory,
        amount: float,
        user_product_ids: Sequence[Optional[str]],
        used_product_id: Optional[str] = None,
    ) -> OptimizationResult:
        products = self._resolve(user_product_ids)
        if not products:
            return OptimizationResult()

        rankings = self.rank(category, amount, products)
        best = rankings[0] if rankings else None
        optimal_reward = best.reward if best else 0.0

        used_product = self.catalog.lookup(used_product_id)
        used_tier = applicable_tier(used_product, category) if used_product else None
        actual_reward = reward_for(amount, used_tier) if used_tier else 0.0

        delta = optimal_reward - actual_reward
        best_id = best.product.id if best else None
        is_optimal = used_product_id == best_id or delta < OPTIMAL_EPSILON

        return OptimizationResult(
            optimal_product=best.product if best else None,
            optimal_tier=best.tier if best else None,
            used_product=used_product,
            used_tier=used_tier,
            actual_reward=actual_reward,
            optimal_reward=optimal_reward,
            rewards_delta=max(0.0, delta),
            is_optimal=is_optimal,
            rankings=tuple(rankings),
        )

    def generate_all_recommendations(
        self, user_product_ids: Sequence[Optional[str]]
    ) -> List[Recommendation]:
        out: List[Recommendation] = []
        for category in SpendingCategory:
            if category in RECOMMENDATION_EXCLUDED:
                continue
            result = self.find_optimal_card(category, REFERENCE_AMOUNT, user_product_ids)
            if result.optimal_product and result.optimal_tier:
                out.append(
                    Recommendation(category, result.optimal_product, result.optimal_tier)
                )
        return out

    def summarize(self, transactions: Iterable[Transaction]) -> RewardsSummary:
        return summarize(transactions)


def summarize(transactions: Iterable[Transaction]) -> RewardsSummary:
    summary = RewardsSummary()
    for txn in transactions:
        summary.total_spend += txn.amount
        summary.total_actual_rewards += txn.actual_reward
        summary.total_optimal_rewards += txn.optimal_reward
        summary.total_missed_rewards += txn.rewards_delta
        summary.transaction_count += 1
        if not txn.is_optimal:
            summary.wrong_card_count += 1

        cat = summary.category_breakdown.setdefault(
            txn.category, CategorySummary(category=txn.category)
        )
        cat.total_spend += txn.amount
        cat.missed_rewards += txn.rewards_delta
        cat.transaction_count += 1
    return summary
