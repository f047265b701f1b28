# storage/portfolio.py
from __future__ import annotations

from typing import List, Protocol

from sca_core.models import Card, Transaction


class Portfolio(Protocol):
    """A user's cards and transaction history, owned by the storage layer."""

    def active_cards(self) -> List[Card]: ...

    def all_cards(self) -> List[Card]: ...

    def add_card(self, card: Card) -> None: ...

    def save_card(self, card: Card) -> None: ...

    def add_transaction(self, txn: Transaction) -> None: ...

    def transactions(self) -> List[Transaction]: ...


class InMemoryPortfolio:
    """List-backed portfolio; cards are shared objects, so save_card is a no-op."""

    def __init__(self) -> None:
        self._cards: List[Card] = []
        self._transactions: List[Transaction] = []

    def active_cards(self) -> List[Card]:
        return [c for c in self._cards if c.is_active]

    def all_cards(self) -> List[Card]:
        return list(self._cards)

    def add_card(self, card: Card) -> None:
        self._cards.append(card)

    def save_card(self, card: Card) -> None:
        if not any(c is card for c in self._cards):
            self._cards.append(card)

    def add_transaction(self, txn: Transaction) -> None:
        self._transactions.append(txn)

    def transactions(self) -> List[Transaction]:
        return list(self._transactions)
