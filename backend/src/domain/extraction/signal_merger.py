"""Merge title-derived and structured signals into a NormalizedListing.

Structured data always wins when it produced a value. Every merged field
records its source in ``provenance``; the condition records the resolver
stage that produced it.
"""

from types import MappingProxyType
from typing import Dict, Optional

from .models import (
    CleanedTitle,
    ConditionResult,
    ItemNumber,
    NormalizedListing,
    SignalSource,
    StructuredSignals,
    TitleSignals,
)
from .number_extractor import parse_structured_number


def merge_item_number(
    title_number: Optional[ItemNumber],
    structured_number: Optional[ItemNumber],
) -> Optional[ItemNumber]:
    """Structured number wins; if it agrees with the title number the title's
    prefix and denominator are kept, since sellers usually type only "6"."""
    if structured_number is None:
        return title_number
    if title_number is not None and title_number.value == structured_number.value:
        return ItemNumber(
            value=structured_number.value,
            prefix=structured_number.prefix or title_number.prefix,
            denominator=structured_number.denominator or title_number.denominator,
        )
    return structured_number


def merge_signals(
    listing_id: str,
    title: CleanedTitle,
    title_signals: TitleSignals,
    structured: Optional[StructuredSignals],
    condition: ConditionResult,
    seller_name: Optional[str] = None,
) -> NormalizedListing:
    """Build the NormalizedListing.

    Args:
        listing_id: Marketplace listing id
        title: Original and cleaned title
        title_signals: Number, variant and name parsed from the title
        structured: Signals from seller aspects, None when the listing had none
        condition: Resolved condition
        seller_name: Marketplace seller

    Returns:
        Immutable NormalizedListing with per-field provenance
    """
    provenance: Dict[str, str] = {}
    structured = structured or StructuredSignals()

    name = title_signals.name
    if structured.card_name:
        name = structured.card_name.lower()
        provenance["name"] = SignalSource.STRUCTURED.value
    elif name:
        provenance["name"] = SignalSource.TITLE.value

    structured_number = parse_structured_number(structured.card_number)
    number = merge_item_number(title_signals.item_number, structured_number)
    if structured_number is not None:
        provenance["number"] = SignalSource.STRUCTURED.value
    elif number is not None:
        provenance["number"] = SignalSource.TITLE.value

    set_name = None
    if structured.set_name:
        set_name = structured.set_name.lower()
        provenance["set_name"] = SignalSource.STRUCTURED.value

    variant = title_signals.variant
    if variant:
        provenance["variant"] = SignalSource.TITLE.value

    language = None
    if structured.language:
        language = structured.language
        provenance["language"] = SignalSource.STRUCTURED.value

    provenance["condition"] = condition.source.value

    return NormalizedListing(
        id=listing_id,
        raw_title=title.original,
        cleaned_title=title.cleaned,
        condition=condition,
        seller_name=seller_name,
        extracted_name=name,
        extracted_number=number,
        extracted_set_name=set_name,
        detected_variant=variant,
        language=language,
        has_structured_data=structured != StructuredSignals(),
        provenance=MappingProxyType(provenance),
    )
