"""Variant resolution for a matched catalog item.

Strategy, on priced variants only:
1. Exactly one priced variant -> single_variant (0.95)
2. Detected variant text matches a variant name, directly or through the
   keyword alias table (longest keyword wins) -> keyword_match (0.85)
3. Otherwise the cheapest priced variant -> default_cheapest (0.50)

Defaulting to the cheapest variant underestimates profit on a false match.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .models import Variant, VariantResolutionMethod

SINGLE_VARIANT_CONFIDENCE = 0.95
KEYWORD_MATCH_CONFIDENCE = 0.85
DEFAULT_CHEAPEST_CONFIDENCE = 0.50

# Catalog variant name -> title keywords that refer to it
VARIANT_ALIASES: Dict[str, List[str]] = {
    "reverseHolofoil": ["reverse holo", "reverse holographic", "rev holo", "reverse"],
    "firstEditionHolofoil": ["1st edition holo", "1st ed holo", "first edition holo"],
    "firstEditionNormal": ["1st edition", "1st ed", "first edition"],
    "unlimitedHolofoil": ["unlimited holo"],
    "unlimitedNormal": ["unlimited"],
    "holofoil": ["holo", "holographic", "holo rare"],
    "specialIllustrationRare": ["special illustration rare", "sir"],
    "specialArtRare": ["special art rare", "sar"],
    "illustrationRare": ["illustration rare"],
    "artRare": ["art rare"],
    "characterRare": ["character rare", "chr"],
    "trainerGallery": ["trainer gallery", "tg"],
}


@dataclass(frozen=True)
class VariantResolution:
    variant: Variant
    method: VariantResolutionMethod
    confidence: float


def _keyword_match(detected: str, variants: Sequence[Variant]) -> Optional[Variant]:
    lowered = detected.lower()

    for variant in variants:
        if variant.name.lower() == lowered:
            return variant

    best: Optional[Variant] = None
    best_length = 0
    for variant in variants:
        for keyword in VARIANT_ALIASES.get(variant.name, []):
            if (keyword in lowered or lowered in keyword) and len(keyword) > best_length:
                best = variant
                best_length = len(keyword)
    return best


def resolve_variant(
    detected_variant: Optional[str],
    variants: Sequence[Variant],
) -> Optional[VariantResolution]:
    """Pick the priced variant a listing refers to.

    Args:
        detected_variant: Variant id or phrase detected in the title
        variants: All variants of the selected catalog item

    Returns:
        VariantResolution, or None when no variant has a market price
    """
    priced = [v for v in variants if v.is_priced]
    if not priced:
        return None

    if len(priced) == 1:
        return VariantResolution(
            priced[0], VariantResolutionMethod.SINGLE_VARIANT, SINGLE_VARIANT_CONFIDENCE
        )

    if detected_variant:
        matched = _keyword_match(detected_variant, priced)
        if matched is not None:
            return VariantResolution(
                matched, VariantResolutionMethod.KEYWORD_MATCH, KEYWORD_MATCH_CONFIDENCE
            )

    # sorted() is stable, ties keep catalog order
    cheapest = sorted(priced, key=lambda v: v.cheapest_market())[0]
    return VariantResolution(
        cheapest, VariantResolutionMethod.DEFAULT_CHEAPEST, DEFAULT_CHEAPEST_CONFIDENCE
    )
