"""Title normalization.

Produces the canonical lowercase form every downstream rule and regex runs on.
"""

import re

from .models import CleanedTitle

EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\u2600-\u27BF"
    "\uFE00-\uFEFF"
    "\U0001FA00-\U0001FAFF"
    "\u200D"
    "\u20E3"
    "]"
)

HTML_ENTITIES = {
    "&amp;": "&",
    "&#39;": "'",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
}

HTML_ENTITY_PATTERN = re.compile("|".join(re.escape(entity) for entity in HTML_ENTITIES))


def normalize_title(raw: str) -> CleanedTitle:
    """Lowercase and strip a raw listing title into its canonical form.

    Removes emoji, decodes the handful of HTML entities marketplaces leak
    into titles, collapses whitespace and trims.

    Args:
        raw: Title exactly as the seller wrote it

    Returns:
        CleanedTitle with the canonical and original text
    """
    cleaned = EMOJI_PATTERN.sub("", raw)
    cleaned = HTML_ENTITY_PATTERN.sub(lambda m: HTML_ENTITIES[m.group(0)], cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip().lower()
    return CleanedTitle(cleaned=cleaned, original=raw)
