"""Item number extraction from cleaned titles.

Recognized forms, in priority order:
- fraction with optional promo prefixes: 006/197, sv065/198, tg15/tg30
- standalone promo numbers: sm60, swsh050, sv001, xy17
- hash form: #150
- "No." form: no. 25
Leading zeros are stripped.
"""

import re
from typing import Optional

from .models import ItemNumber

PREFIXES = "swsh|sv|sm|xy|tg|gg"

FRACTION_PATTERN = re.compile(
    rf"\b({PREFIXES})?0*(\d{{1,4}})\s*/\s*(?:{PREFIXES})?0*(\d{{1,4}})\b",
    re.IGNORECASE,
)

PROMO_PATTERN = re.compile(rf"\b({PREFIXES})(\d{{2,4}})\b", re.IGNORECASE)

HASH_PATTERN = re.compile(r"#0*(\d{1,4})\b")

NO_PATTERN = re.compile(r"\bno\.?\s*0*(\d{1,4})\b", re.IGNORECASE)


def extract_item_number(cleaned_title: str) -> Optional[ItemNumber]:
    """Parse the item number out of a cleaned title.

    Args:
        cleaned_title: Normalized listing title

    Returns:
        ItemNumber, or None when the title carries no recognizable number
    """
    match = FRACTION_PATTERN.search(cleaned_title)
    if match:
        prefix = match.group(1)
        return ItemNumber(
            value=int(match.group(2)),
            prefix=prefix.upper() if prefix else None,
            denominator=int(match.group(3)),
        )

    match = PROMO_PATTERN.search(cleaned_title)
    if match:
        return ItemNumber(value=int(match.group(2)), prefix=match.group(1).upper())

    match = HASH_PATTERN.search(cleaned_title)
    if match:
        return ItemNumber(value=int(match.group(1)))

    match = NO_PATTERN.search(cleaned_title)
    if match:
        return ItemNumber(value=int(match.group(1)))

    return None


def parse_structured_number(value: Optional[str]) -> Optional[ItemNumber]:
    """Parse a seller-provided "Card Number" aspect ("006", "6/197", "SWSH050").

    Args:
        value: Raw aspect value

    Returns:
        ItemNumber, or None when the value holds no digits
    """
    if not value:
        return None
    text = value.strip().lower()
    parsed = extract_item_number(text)
    if parsed:
        return parsed
    match = re.match(r"^0*(\d{1,4})$", text)
    if match:
        return ItemNumber(value=int(match.group(1)))
    return None
