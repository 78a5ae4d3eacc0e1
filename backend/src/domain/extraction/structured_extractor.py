"""Structured signal extraction from seller-provided aspects."""

from dataclasses import replace
from typing import Dict, Iterable

from .models import ListingAspect, StructuredSignals

ASPECT_FIELDS: Dict[str, str] = {
    "card name": "card_name",
    "character": "card_name",
    "card number": "card_number",
    "set": "set_name",
    "expansion": "set_name",
    "rarity": "rarity",
    "language": "language",
    "professional grader": "grading_company",
    "grade": "grade",
    "year manufactured": "year",
}

# Fallback aspect names, only used when their primary aspect is absent
FALLBACK_ASPECTS = {"character", "expansion"}


def extract_structured(aspects: Iterable[ListingAspect]) -> StructuredSignals:
    """Map seller aspects onto StructuredSignals.

    Args:
        aspects: Name/value attribute list from the listing

    Returns:
        StructuredSignals; fields without a usable aspect stay None
    """
    signals = StructuredSignals()
    for aspect in aspects:
        aspect_name = aspect.name.strip().lower()
        field_name = ASPECT_FIELDS.get(aspect_name)
        if not field_name:
            continue

        value = aspect.value.strip()
        if not value:
            continue

        if aspect_name in FALLBACK_ASPECTS and getattr(signals, field_name) is not None:
            continue
        signals = replace(signals, **{field_name: value})
    return signals
