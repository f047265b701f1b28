# matcher/issuers.py
from __future__ import annotations

from typing import Sequence, Tuple

UNKNOWN_ISSUER = "Unknown"

# (variant as it appears in a label, canonical issuer), checked in order
ISSUER_VARIANTS: Tuple[Tuple[str, str], ...] = (
    ("DBS", "DBS"),
    ("POSB", "DBS"),
    ("OCBC", "OCBC"),
    ("UOB", "UOB"),
    ("Citi", "Citi"),
    ("Citibank", "Citi"),
    ("HSBC", "HSBC"),
    ("AMEX", "AMEX"),
    ("American Express", "AMEX"),
    ("Standard Chartered", "Standard Chartered"),
    ("StanChart", "Standard Chartered"),
    ("Maybank", "Maybank"),
    ("CIMB", "CIMB"),
    ("BOC", "BOC"),
    ("Bank of China", "BOC"),
)


def extract_issuer(
    raw_name: str, variants: Sequence[Tuple[str, str]] = ISSUER_VARIANTS
) -> str:
    """Guess the issuer from a raw card label when no catalog product matched."""
    upper = (raw_name or "").upper()
    for variant, canonical in variants:
        if variant.upper() in upper:
            return canonical
    return UNKNOWN_ISSUER
