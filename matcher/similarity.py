# matcher/similarity.py
from __future__ import annotations

from typing import List


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit insert/delete/substitute costs."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    prev: List[int] = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur[j] = min(
                prev[j] + 1,  # deletion
                cur[j - 1] + 1,  # insertion
                prev[j - 1] + cost,  # substitution
            )
        prev = cur
    return prev[-1]


def similarity(a: str, b: str) -> float:
    """
    Score two already-normalized labels in [0, 1]. First rule that applies wins:
      1) equal                      -> 1.0
      2) one contains the other     -> 0.7 + 0.3 * shorter/longer
      3) shared whitespace tokens   -> Jaccard of the token sets
      4) otherwise                  -> 1 - levenshtein / longer
    Containment needs both sides non-empty; an empty string against a
    non-empty one scores 0.0 through rule 4.
    """
    if a == b:
        return 1.0

    if a and b and (a in b or b in a):
        shorter, longer = sorted((len(a), len(b)))
        return 0.7 + 0.3 * shorter / longer

    tokens_a = set(a.split())
    tokens_b = set(b.split())
    shared = tokens_a & tokens_b
    if shared:
        return len(shared) / len(tokens_a | tokens_b)

    longest = max(len(a), len(b))
    return 1.0 - levenshtein(a, b) / longest
