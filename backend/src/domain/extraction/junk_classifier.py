"""Rule-based junk classification.

Rejects listings that are not a single genuine card: bulk lots, fakes,
sealed/accessory products and cards printed in a language other than
the target one. Runs first in the pipeline and is terminal.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Pattern, Tuple

from .models import RejectionReason


def _word_patterns(*phrases: str) -> List[Pattern]:
    return [re.compile(rf"\b{re.escape(phrase)}\b") for phrase in phrases]


BULK_PATTERNS = _word_patterns(
    "lot", "bundle", "bulk", "collection", "x10", "x20", "x50", "x100",
    "set of", "mystery", "random", "grab bag", "job lot",
)

FAKE_PATTERNS = _word_patterns(
    "custom", "proxy", "orica", "replica", "fake", "unofficial",
    "fan made", "fan art", "altered art", "reproduction",
)

NON_CARD_PATTERNS = _word_patterns(
    "booster box", "booster", "etb", "elite trainer", "tin", "binder",
    "sleeve", "playmat", "deck box", "code card", "online code",
)

# Title words that mark a card printed in another language
LANGUAGE_TITLE_WORDS: Dict[str, Tuple[str, ...]] = {
    "japanese": ("japanese", "japan", "jpn"),
    "korean": ("korean",),
    "chinese": ("chinese",),
    "german": ("german", "deutsch"),
    "french": ("french", "francais"),
    "italian": ("italian",),
    "spanish": ("spanish",),
    "portuguese": ("portuguese",),
}

# Ordered: the first matching group decides the reason
JUNK_RULES: List[Tuple[RejectionReason, List[Pattern]]] = [
    (RejectionReason.BULK_LOT, BULK_PATTERNS),
    (RejectionReason.FAKE, FAKE_PATTERNS),
    (RejectionReason.NON_CARD, NON_CARD_PATTERNS),
]


@lru_cache(maxsize=None)
def non_target_language_patterns(target_language: str = "english") -> Tuple[Pattern, ...]:
    """Language words for every language except the target one"""
    target = target_language.strip().lower()
    words = [
        word
        for language, language_words in LANGUAGE_TITLE_WORDS.items()
        if language != target
        for word in language_words
    ]
    return tuple(_word_patterns(*words))


@dataclass(frozen=True)
class JunkVerdict:
    is_junk: bool
    reason: Optional[RejectionReason] = None
    matched: Optional[str] = None


def classify_junk(cleaned_title: str, target_language: str = "english") -> JunkVerdict:
    """Check a cleaned title against the ordered junk rule set.

    The language rule runs last and reports non_english for any language
    word other than the target language's own.

    Args:
        cleaned_title: Output of normalize_title (lowercase)
        target_language: Listing language the matcher accepts

    Returns:
        JunkVerdict with the first matching reason, or is_junk=False
    """
    rules = JUNK_RULES + [(RejectionReason.NON_ENGLISH, non_target_language_patterns(target_language))]
    for reason, patterns in rules:
        for pattern in patterns:
            match = pattern.search(cleaned_title)
            if match:
                return JunkVerdict(is_junk=True, reason=reason, matched=match.group(0))
    return JunkVerdict(is_junk=False)


def is_target_language(language: str, target_language: str = "english") -> bool:
    """Check a structured language value ("English", "English (EN)", ...)"""
    return language.strip().lower().startswith(target_language.lower())
