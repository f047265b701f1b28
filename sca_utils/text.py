# sca_utils/text.py
from __future__ import annotations
from typing import Optional


def normalize_label(text: Optional[str]) -> str:
    """Lowercase and trim; the shared normal form for merchant and card labels."""
    return (text or "").lower().strip()
