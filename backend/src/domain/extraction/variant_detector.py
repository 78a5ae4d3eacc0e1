"""Variant keyword detection from cleaned titles."""

from typing import List, Optional, Tuple

# Order matters: longer/more specific keywords must be checked first
VARIANT_KEYWORDS: List[Tuple[str, List[str]]] = [
    ("reverseHolofoil", ["reverse holo", "reverse holographic", "rev holo", "reverse"]),
    ("firstEditionHolofoil", ["1st edition holo", "1st ed holo", "first edition holo"]),
    ("firstEditionNormal", ["1st edition", "1st ed", "first edition"]),
    ("unlimitedHolofoil", ["unlimited holo"]),
    ("unlimitedNormal", ["unlimited"]),
    ("holofoil", ["holo", "holographic", "holo rare"]),
]

# Finish/rarity phrases with no dedicated variant id; passed through as text
ADDITIONAL_VARIANTS = [
    "full art",
    "alt art",
    "alternate art",
    "secret rare",
    "gold",
    "rainbow",
    "shadowless",
]


def detect_variant(cleaned_title: str) -> Optional[str]:
    """Detect the variant a title claims.

    Args:
        cleaned_title: Normalized listing title

    Returns:
        Variant identifier (e.g. "reverseHolofoil"), a finish phrase, or None
    """
    for variant, keywords in VARIANT_KEYWORDS:
        for keyword in keywords:
            if keyword in cleaned_title:
                return variant

    for phrase in ADDITIONAL_VARIANTS:
        if phrase in cleaned_title:
            return phrase

    return None
