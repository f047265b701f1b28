# notify/dispatcher.py
"""
Alert signals raised by the ingestion pipeline, and the dispatchers that
consume them. Delivery to a device is out of scope; LoggingNotifier writes
the message to the log and CollectingNotifier keeps payloads for callers.
"""
from __future__ import annotations

import logging
from typing import List, Protocol

from sca_core.models import (
    NewCardDetected,
    RewardsSummary,
    Transaction,
    WrongCardAlert,
)

log = logging.getLogger("notify")


def _money(value: float, symbol: str = "$") -> str:
    return f"{symbol}{value:,.2f}"


def format_wrong_card_message(alert: WrongCardAlert, symbol: str = "$") -> str:
    return (
        f"You paid {_money(alert.amount, symbol)} at {alert.merchant} with {alert.used_card_name}. "
        f"{alert.optimal_card_name} would've earned {alert.optimal_rate_description} "
        f"(saved ~{_money(alert.rewards_delta, symbol)})"
    )


def format_new_card_message(event: NewCardDetected) -> str:
    return f"Found a new card: {event.card_name}! We'll optimize recommendations for it."


def format_weekly_digest(summary: RewardsSummary, symbol: str = "$") -> str:
    return (
        f"This week: {summary.transaction_count} transactions, "
        f"{_money(summary.total_missed_rewards, symbol)} in missed rewards. See details."
    )


def format_ingest_result(txn: Transaction, symbol: str = "$") -> str:
    """One-line outcome shown to whoever reported the payment."""
    category = txn.category.display_name
    if txn.is_optimal:
        return f"Great choice! {txn.card_name} is optimal for {category}."
    if txn.optimal_card_name:
        return (
            f"{txn.optimal_card_name} would've been better for {category} "
            f"(saved {_money(txn.rewards_delta, symbol)})."
        )
    return f"Transaction logged: {_money(txn.amount, symbol)} at {txn.merchant_name}."


class Notifier(Protocol):
    def wrong_card_alert(self, alert: WrongCardAlert) -> None: ...

    def new_card_detected(self, event: NewCardDetected) -> None: ...


class LoggingNotifier:
    def __init__(self, currency_symbol: str = "$") -> None:
        self.currency_symbol = currency_symbol

    def wrong_card_alert(self, alert: WrongCardAlert) -> None:
        log.info("Better card available: %s", format_wrong_card_message(alert, self.currency_symbol))

    def new_card_detected(self, event: NewCardDetected) -> None:
        log.info("New card detected: %s", format_new_card_message(event))


class CollectingNotifier:
    """Keeps every payload it receives, in order."""

    def __init__(self) -> None:
        self.wrong_card_alerts: List[WrongCardAlert] = []
        self.new_cards: List[NewCardDetected] = []

    def wrong_card_alert(self, alert: WrongCardAlert) -> None:
        self.wrong_card_alerts.append(alert)

    def new_card_detected(self, event: NewCardDetected) -> None:
        self.new_cards.append(event)
