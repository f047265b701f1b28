# matcher/service.py
"""
Card matcher: raw card label (as reported by the payment platform) -> catalog product.

detect() is pure. resolve_and_upsert() folds the match into the user's
portfolio, reusing an existing card when the label or the product is known.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterator, Optional, Sequence, Tuple

from catalog.loader import Catalog
from sca_core.models import MATCH_THRESHOLD, Card, CardProduct, MatchResult, utcnow
from sca_utils.text import normalize_label
from matcher.issuers import ISSUER_VARIANTS, extract_issuer
from matcher.similarity import similarity
from storage.portfolio import Portfolio

log = logging.getLogger("matcher")


def _candidates(product: CardProduct) -> Iterator[str]:
    yield product.full_name
    yield product.display_name
    yield from product.aliases


class CardMatcher:
    CONFIDENCE_THRESHOLD = MATCH_THRESHOLD

    def __init__(
        self,
        catalog: Catalog,
        issuer_variants: Sequence[Tuple[str, str]] = ISSUER_VARIANTS,
    ):
        self.catalog = catalog
        self.issuer_variants = tuple(issuer_variants)

    def detect(self, raw_name: str) -> Optional[MatchResult]:
        """Best-scoring catalog product for `raw_name`, or None if nothing scores above 0."""
        normalized = normalize_label(raw_name)
        best: Optional[MatchResult] = None
        for product in self.catalog:
            for candidate in _candidates(product):
                score = similarity(normalized, normalize_label(candidate))
                if score > (best.confidence if best else 0.0):
                    best = MatchResult(
                        product=product, confidence=score, matched_on=candidate
                    )
        if best is not None:
            log.debug(
                "'%s' -> %s (%.2f via '%s')",
                raw_name,
                best.product.id,
                best.confidence,
                best.matched_on,
            )
        return best

    def extract_issuer(self, raw_name: str) -> str:
        return extract_issuer(raw_name, self.issuer_variants)

    def resolve_and_upsert(
        self,
        raw_name: str,
        portfolio: Portfolio,
        seen_at: Optional[datetime] = None,
    ) -> Card:
        """Update the card this label belongs to, or create it."""
        seen_at = seen_at or utcnow()
        match = self.detect(raw_name)
        product_id = match.product.id if match else None

        for card in portfolio.active_cards():
            if card.knows_label(raw_name) or (
                product_id is not None and card.product_id == product_id
            ):
                if raw_name not in card.raw_names:
                    card.raw_names.append(raw_name)
                card.last_used = seen_at
                card.transaction_count += 1
                portfolio.save_card(card)
                log.debug("Updated card %s (%d txns)", card.id, card.transaction_count)
                return card

        if match:
            card = Card(
                name=match.product.name,
                issuer=match.product.issuer,
                product_id=product_id,
                match_confidence=match.confidence,
            )
        else:
            card = Card(name=raw_name, issuer=self.extract_issuer(raw_name))
        card.raw_names.append(raw_name)
        card.first_seen = seen_at
        card.last_used = seen_at
        portfolio.add_card(card)
        log.info("New card: %s [%s]", card.display_name, card.match_status)
        return card
