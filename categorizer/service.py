# categorizer/service.py
"""
Categorizer service: merchant name -> spending category.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import yaml

from sca_core.models import SpendingCategory
from sca_utils.categories import CATEGORY_KEYWORDS
from sca_utils.text import normalize_label
from categorizer.rules import KeywordRule, RulesError, apply_rules, compile_rules, parse_rules

log = logging.getLogger("categorizer")


class MerchantCategorizer:
    """Rule-based merchant categorizer over an ordered keyword table."""

    def __init__(
        self,
        keywords: Optional[Sequence[Tuple[SpendingCategory | str, Sequence[str]]]] = None,
        rules_path: Optional[str] = None,
    ):
        self.rules: Tuple[KeywordRule, ...] = compile_rules(
            keywords if keywords is not None else CATEGORY_KEYWORDS
        )
        if rules_path:
            p = Path(rules_path)
            if p.exists():
                try:
                    with open(p, "r", encoding="utf-8") as f:
                        cfg = yaml.safe_load(f) or {}
                except (OSError, yaml.YAMLError) as e:
                    raise RulesError(f"Keyword rules not readable: {p}") from e
                self.rules = parse_rules(cfg)
                log.info("Loaded %d keyword rules from %s", len(self.rules), p)
            else:
                log.info("Keyword file not found at %s; using built-in table.", p)

    def categorize(self, merchant_name: str) -> SpendingCategory:
        return self.match(merchant_name)[0]

    def match(self, merchant_name: str) -> Tuple[SpendingCategory, Optional[str]]:
        """Return (category, keyword that decided it); keyword is None for GENERAL fallback."""
        return apply_rules(normalize_label(merchant_name), self.rules)

    def keywords_for(self, category: SpendingCategory) -> List[str]:
        out: List[str] = []
        for rule in self.rules:
            if rule.category is category:
                out.extend(rule.keywords)
        return out

    def is_merchant_in_category(
        self, merchant_name: str, category: SpendingCategory
    ) -> bool:
        return self.categorize(merchant_name) is category

    def get_rule_count(self) -> int:
        return len(self.rules)
