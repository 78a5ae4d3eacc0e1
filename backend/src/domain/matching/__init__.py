"""Domain layer for listing-to-catalog matching.

Candidate retrieval, name/expansion validation, variant resolution,
weighted-geometric-mean confidence, gates and confusion memory.
"""

from .models import (
    CatalogItem,
    Variant,
    PricePoint,
    ConfidenceSignals,
    WeightSet,
    DEFAULT_WEIGHTS,
    MatchConfidence,
    MatchResult,
    MatchOutcome,
    ConfusionRecord,
    RetrievalStrategy,
    VariantResolutionMethod,
    ReviewReason,
)
from .confidence import WeightRegistry, compute_composite
from .gates import passes_gate, classify_confidence, DECISION_THRESHOLD
from .validators import validate_name, validate_expansion, jaro_winkler
from .variant_resolver import resolve_variant
from .candidate_retriever import CandidateRetriever
from .confusion_memory import ConfusionMemory, ConfusionLookup, StaticConfusionLookup
from .matcher import ListingMatcher, ListingMatchService

__all__ = [
    "CatalogItem",
    "Variant",
    "PricePoint",
    "ConfidenceSignals",
    "WeightSet",
    "DEFAULT_WEIGHTS",
    "MatchConfidence",
    "MatchResult",
    "MatchOutcome",
    "ConfusionRecord",
    "RetrievalStrategy",
    "VariantResolutionMethod",
    "ReviewReason",
    "WeightRegistry",
    "compute_composite",
    "passes_gate",
    "classify_confidence",
    "DECISION_THRESHOLD",
    "validate_name",
    "validate_expansion",
    "jaro_winkler",
    "resolve_variant",
    "CandidateRetriever",
    "ConfusionMemory",
    "ConfusionLookup",
    "StaticConfusionLookup",
    "ListingMatcher",
    "ListingMatchService",
]
