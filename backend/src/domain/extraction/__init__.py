"""Domain layer for listing signal extraction.

Turns a raw marketplace listing into a NormalizedListing: cleaned title,
junk rejection, item number, variant, condition and structured aspects,
merged with per-field provenance.
"""

from .models import (
    RawListing,
    ListingAspect,
    ConditionDescriptor,
    ConditionCode,
    ConditionSource,
    ConditionResult,
    ItemNumber,
    NormalizedListing,
    ExtractionResult,
    RejectionReason,
)
from .pipeline import extract_signals
from .title_normalizer import normalize_title
from .junk_classifier import classify_junk
from .junk_scorer import JunkSignalCache, JunkReportService, score_junk_signals
from .number_extractor import extract_item_number
from .variant_detector import detect_variant
from .condition_resolver import resolve_condition
from .signal_merger import merge_signals

__all__ = [
    "RawListing",
    "ListingAspect",
    "ConditionDescriptor",
    "ConditionCode",
    "ConditionSource",
    "ConditionResult",
    "ItemNumber",
    "NormalizedListing",
    "ExtractionResult",
    "RejectionReason",
    "extract_signals",
    "normalize_title",
    "classify_junk",
    "JunkSignalCache",
    "JunkReportService",
    "score_junk_signals",
    "extract_item_number",
    "detect_variant",
    "resolve_condition",
    "merge_signals",
]
