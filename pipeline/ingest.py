# pipeline/ingest.py
"""
Per-transaction pipeline:
  merchant --categorize--> category
  raw card --match/upsert--> Card
  portfolio product ids + category + amount --optimize--> verdict
  --> Transaction persisted, alerts emitted
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from catalog.loader import Catalog
from categorizer.service import MerchantCategorizer
from matcher.service import CardMatcher
from notify.dispatcher import LoggingNotifier, Notifier
from optimizer.engine import REFERENCE_AMOUNT, RewardOptimizer
from sca_core.models import (
    CardProduct,
    NewCardDetected,
    OptimizationResult,
    Recommendation,
    RewardsSummary,
    SpendingCategory,
    Transaction,
    WrongCardAlert,
    utcnow,
)
from storage.portfolio import Portfolio

log = logging.getLogger("pipeline")

DEFAULT_CURRENCY = "SGD"

# report windows: this week (from Monday), this month, last month, everything
PERIODS = ("week", "month", "last-month", "all")


def _aware(ts: datetime) -> datetime:
    # naive timestamps are stored as UTC
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def period_bounds(
    period: str, now: datetime
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    [start, end) of a report period relative to `now`. None means unbounded.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown report period: {period!r}")
    now = _aware(now)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = midnight.replace(day=1)
    if period == "week":
        return midnight - timedelta(days=midnight.weekday()), None
    if period == "month":
        return month_start, None
    if period == "last-month":
        prev = (month_start - timedelta(days=1)).replace(day=1)
        return prev, month_start
    return None, None


def in_period(
    transactions: Iterable[Transaction],
    start: Optional[datetime],
    end: Optional[datetime],
) -> List[Transaction]:
    out: List[Transaction] = []
    for txn in transactions:
        ts = _aware(txn.timestamp)
        if start is not None and ts < start:
            continue
        if end is not None and ts >= end:
            continue
        out.append(txn)
    return out


class IngestionPipeline:
    def __init__(
        self,
        catalog: Catalog,
        categorizer: Optional[MerchantCategorizer] = None,
        matcher: Optional[CardMatcher] = None,
        optimizer: Optional[RewardOptimizer] = None,
        notifier: Optional[Notifier] = None,
        home_currency: str = DEFAULT_CURRENCY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.catalog = catalog
        self.categorizer = categorizer or MerchantCategorizer()
        self.matcher = matcher or CardMatcher(catalog)
        self.optimizer = optimizer or RewardOptimizer(catalog)
        self.notifier = notifier or LoggingNotifier()
        self.home_currency = home_currency
        self.clock = clock

    def ingest(
        self,
        merchant_name: str,
        amount: float,
        raw_card_label: str,
        portfolio: Portfolio,
        currency: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Transaction:
        timestamp = timestamp or self.clock()

        # Stage 1: categorize
        category = self.categorizer.categorize(merchant_name)

        # Stage 2: resolve the card; must land in the portfolio before stage 3 reads it
        card = self.matcher.resolve_and_upsert(raw_card_label, portfolio, seen_at=timestamp)

        # Stage 3: optimize over every active card
        active = portfolio.active_cards()
        product_ids = [c.product_id for c in active if c.product_id]
        result = self.optimizer.find_optimal_card(
            category, amount, product_ids, used_product_id=card.product_id
        )

        optimal_card_id = None
        if result.optimal_product is not None:
            optimal_card_id = next(
                (c.id for c in active if c.product_id == result.optimal_product.id),
                None,
            )

        # Stage 4: persist
        txn = Transaction(
            merchant_name=merchant_name,
            amount=amount,
            currency=currency or self.home_currency,
            card_name=raw_card_label,
            card_id=card.id,
            category=category,
            optimal_card_id=optimal_card_id,
            actual_reward=result.actual_reward,
            optimal_reward=result.optimal_reward,
            rewards_delta=result.rewards_delta,
            optimal_card_name=(
                result.optimal_product.display_name if result.optimal_product else None
            ),
            timestamp=timestamp,
            is_optimal=result.is_optimal,
        )
        portfolio.add_transaction(txn)
        log.info(
            "%s %.2f at '%s' [%s] with %s: optimal=%s delta=%.4f",
            txn.currency,
            amount,
            merchant_name,
            category.value,
            card.display_name,
            txn.is_optimal,
            txn.rewards_delta,
        )

        # Stage 5: signals
        if not result.is_optimal and result.optimal_product is not None:
            self._emit(
                self.notifier.wrong_card_alert,
                WrongCardAlert(
                    merchant=merchant_name,
                    amount=amount,
                    used_card_name=card.display_name,
                    optimal_card_name=result.optimal_product.display_name,
                    rewards_delta=result.rewards_delta,
                    optimal_rate_description=(
                        result.optimal_tier.rate_description if result.optimal_tier else ""
                    ),
                ),
            )
        if card.transaction_count == 1:
            self._emit(
                self.notifier.new_card_detected,
                NewCardDetected(card_name=card.display_name),
            )
        return txn

    def _emit(self, send: Callable, payload) -> None:
        # fire-and-forget: the transaction is already stored
        try:
            send(payload)
        except Exception as exc:  # noqa: BLE001
            log.exception("Notifier failed for %s: %s", type(payload).__name__, exc)

    def preview_optimal_card(
        self, merchant_name: str, user_product_ids: Sequence[str]
    ) -> Optional[CardProduct]:
        """Read-only 'which card here' query; only the ranking matters, so amount is 0."""
        category = self.categorizer.categorize(merchant_name)
        result = self.optimizer.find_optimal_card(category, 0.0, user_product_ids)
        return result.optimal_product

    def best_card_for_merchant(
        self, merchant_name: str, user_product_ids: Sequence[str]
    ) -> Tuple[SpendingCategory, OptimizationResult]:
        category = self.categorizer.categorize(merchant_name)
        result = self.optimizer.find_optimal_card(
            category, REFERENCE_AMOUNT, user_product_ids
        )
        return category, result

    def recommendations(self, portfolio: Portfolio) -> List[Recommendation]:
        return self.optimizer.generate_all_recommendations(portfolio_product_ids(portfolio))

    def summary(self, portfolio: Portfolio, period: str = "all") -> RewardsSummary:
        """Missed-rewards report over the transactions inside `period`."""
        start, end = period_bounds(period, self.clock())
        return self.optimizer.summarize(in_period(portfolio.transactions(), start, end))


def portfolio_product_ids(portfolio: Portfolio) -> List[str]:
    return [c.product_id for c in portfolio.active_cards() if c.product_id]
