"""Card name extraction from cleaned titles.

Sellers almost always lead with the card name ("charizard ex 006/197 ..."),
so the text before the item number is taken as the name. Titles without a
number fall back to the title with listing noise removed.
"""

import re
from typing import List, Optional

from .number_extractor import FRACTION_PATTERN, HASH_PATTERN, NO_PATTERN, PROMO_PATTERN
from .condition_resolver import TITLE_GRADING_PATTERN
from .variant_detector import ADDITIONAL_VARIANTS, VARIANT_KEYWORDS

NAME_NOISE = frozenset({
    "pokemon", "pokémon", "tcg", "card", "cards", "ccg", "trading",
    "nm", "lp", "mp", "hp", "mint", "near", "lightly", "moderately",
    "heavily", "played", "excellent", "poor", "graded", "ungraded",
    "psa", "bgs", "cgc", "sgc", "ace", "rare", "holo", "holofoil",
    "english", "eng", "en", "uk", "free", "postage", "p&p",
})

NUMBER_PATTERNS = [FRACTION_PATTERN, PROMO_PATTERN, HASH_PATTERN, NO_PATTERN]

PUNCTUATION = re.compile(r"[|,;:()\[\]{}\"!*~]+")

MIN_NAME_LENGTH = 3


def _number_start(cleaned_title: str) -> Optional[int]:
    starts = [m.start() for m in (p.search(cleaned_title) for p in NUMBER_PATTERNS) if m]
    return min(starts) if starts else None


def _strip_noise(text: str) -> str:
    text = TITLE_GRADING_PATTERN.sub(" ", text)
    for pattern in NUMBER_PATTERNS:
        text = pattern.sub(" ", text)
    for _, keywords in VARIANT_KEYWORDS:
        for keyword in keywords:
            text = re.sub(rf"\b{re.escape(keyword)}\b", " ", text)
    for phrase in ADDITIONAL_VARIANTS:
        text = re.sub(rf"\b{re.escape(phrase)}\b", " ", text)
    text = PUNCTUATION.sub(" ", text)
    words: List[str] = [w for w in text.split() if w not in NAME_NOISE and not w.isdigit()]
    return " ".join(words)


def extract_title_name(cleaned_title: str) -> Optional[str]:
    """Best-effort card name from the title.

    Args:
        cleaned_title: Normalized listing title

    Returns:
        Lowercase name, or None when nothing name-like remains
    """
    start = _number_start(cleaned_title)
    if start:
        name = _strip_noise(cleaned_title[:start])
        if len(name) >= MIN_NAME_LENGTH:
            return name

    name = _strip_noise(cleaned_title)
    if len(name) >= MIN_NAME_LENGTH:
        return name
    return None
