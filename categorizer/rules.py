"""
Keyword rules for merchant categorization.

A rule is a category plus its keywords. Matching is plain substring
containment on the normalized merchant name; the longest matching keyword
across all rules decides the category. Rules are evaluated in table order
and a keyword must be strictly longer to displace the current best, so the
earlier rule wins at equal length.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sca_core.models import SpendingCategory


class RulesError(Exception):
    """Keyword override file missing fields or naming an unknown category."""


@dataclass(frozen=True)
class KeywordRule:
    category: SpendingCategory
    keywords: Tuple[str, ...]

    def longest_match(self, normalized: str) -> Optional[str]:
        """Longest keyword contained in `normalized`, first one on ties."""
        best: Optional[str] = None
        for keyword in self.keywords:
            if keyword in normalized and (best is None or len(keyword) > len(best)):
                best = keyword
        return best


def compile_rules(
    table: Iterable[Tuple[SpendingCategory | str, Sequence[str]]],
) -> Tuple[KeywordRule, ...]:
    """Turn an ordered (category, keywords) table into rules."""
    rules: List[KeywordRule] = []
    for category, keywords in table:
        if not isinstance(category, SpendingCategory):
            category = SpendingCategory.parse(category)
        rules.append(
            KeywordRule(
                category=category,
                keywords=tuple(k.lower() for k in keywords if k),
            )
        )
    return tuple(rules)


def parse_rules(cfg: Dict[str, Any]) -> Tuple[KeywordRule, ...]:
    """
    Parse rules from a YAML config dict:

        categories:
          - category: dining
            keywords: [starbucks, ya kun]
    """
    try:
        table = [
            (entry["category"], entry.get("keywords", []) or [])
            for entry in cfg.get("categories", []) or []
        ]
        return compile_rules(table)
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise RulesError(f"Malformed keyword rules: {e!r}") from e


def apply_rules(
    normalized: str, rules: Sequence[KeywordRule]
) -> Tuple[SpendingCategory, Optional[str]]:
    """
    Return (category, keyword) for the longest keyword match.
    Falls back to (GENERAL, None) when nothing matches.
    """
    best_category = SpendingCategory.GENERAL
    best_keyword: Optional[str] = None
    for rule in rules:
        keyword = rule.longest_match(normalized)
        if keyword is None:
            continue
        if best_keyword is None or len(keyword) > len(best_keyword):
            best_category = rule.category
            best_keyword = keyword
    return best_category, best_keyword
