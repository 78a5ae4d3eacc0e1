"""Signal extraction pipeline.

normalize -> junk rules (terminal) -> title number/variant/name ->
condition chain -> structured aspects -> merge -> language check
"""

import logging

from .condition_resolver import resolve_condition
from .junk_classifier import classify_junk, is_target_language
from .models import ExtractionResult, RawListing, RejectionReason, TitleSignals
from .name_extractor import extract_title_name
from .number_extractor import extract_item_number
from .signal_merger import merge_signals
from .structured_extractor import extract_structured
from .title_normalizer import normalize_title
from .variant_detector import detect_variant

logger = logging.getLogger(__name__)


def extract_signals(raw: RawListing, target_language: str = "english") -> ExtractionResult:
    """Turn a raw listing into a NormalizedListing or a rejection.

    Args:
        raw: Validated raw listing
        target_language: Structured language values must start with this

    Returns:
        ExtractionResult; rejections carry a RejectionReason, never raise
    """
    title = normalize_title(raw.title)

    verdict = classify_junk(title.cleaned, target_language=target_language)
    if verdict.is_junk:
        logger.debug(
            f"Listing {raw.id} rejected as {verdict.reason.value} (matched {verdict.matched!r})",
            extra={"listing_id": raw.id, "rejection_reason": verdict.reason.value},
        )
        return ExtractionResult.reject(verdict.reason, detail=verdict.matched)

    title_signals = TitleSignals(
        item_number=extract_item_number(title.cleaned),
        variant=detect_variant(title.cleaned),
        name=extract_title_name(title.cleaned),
    )

    condition = resolve_condition(
        title.cleaned,
        descriptors=raw.condition_descriptors,
        aspects=raw.aspects,
        condition_text=raw.condition_text,
    )

    structured = extract_structured(raw.aspects) if raw.aspects else None

    listing = merge_signals(
        raw.id,
        title,
        title_signals,
        structured,
        condition,
        seller_name=raw.seller_name,
    )

    if listing.language is not None and not is_target_language(listing.language, target_language):
        logger.debug(
            f"Listing {raw.id} rejected: language {listing.language!r}",
            extra={"listing_id": raw.id, "rejection_reason": RejectionReason.NON_ENGLISH.value},
        )
        return ExtractionResult.reject(RejectionReason.NON_ENGLISH, detail=listing.language)

    return ExtractionResult.accept(listing)
