"""Matching domain models.

Catalog reference data, confidence signals, weight sets and match
results. All of them are frozen dataclasses: a match result is created
once per listing and a weight set is replaced, never edited.
"""

import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from domain.extraction.models import ConditionCode, RejectionReason

# Raw condition buckets, best first; cheapest-variant lookup walks this order
CONDITION_ORDER: Tuple[str, ...] = tuple(code.value for code in ConditionCode)

SIGNAL_NAMES: Tuple[str, ...] = (
    "name",
    "number",
    "denominator",
    "expansion",
    "variant",
    "normalization",
)

# Allowed drift of the weight sum from 1.0 after rounding to 3 dp
WEIGHT_SUM_TOLERANCE = 0.0015


class RetrievalStrategy(str, Enum):
    """Which retrieval query produced the candidate set"""
    NUMBER_DENOMINATOR = "number_denominator"
    NUMBER_PREFIX = "number_prefix"
    NUMBER_ONLY = "number_only"
    NAME_FUZZY = "name_fuzzy"
    NONE = "none"


class VariantResolutionMethod(str, Enum):
    SINGLE_VARIANT = "single_variant"
    KEYWORD_MATCH = "keyword_match"
    DEFAULT_CHEAPEST = "default_cheapest"


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    REJECT = "reject"


@dataclass(frozen=True)
class PricePoint:
    low: Optional[float] = None
    market: Optional[float] = None


@dataclass(frozen=True)
class Variant:
    """Priced sub-version of a catalog item (e.g. reverseHolofoil)"""
    variant_id: str
    name: str
    raw_prices: Mapping[str, PricePoint] = field(default_factory=lambda: MappingProxyType({}))
    graded_prices: Optional[Mapping[str, PricePoint]] = None
    trends: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_priced(self) -> bool:
        """Matchable iff at least one raw condition has a market price"""
        return any(p.market is not None for p in self.raw_prices.values())

    def cheapest_market(self) -> float:
        """Market price of the best available condition, NM first"""
        for condition in CONDITION_ORDER:
            price = self.raw_prices.get(condition)
            if price is not None and price.market is not None:
                return price.market
        return math.inf


@dataclass(frozen=True)
class CatalogItem:
    """Read-only catalog reference record"""
    catalog_id: str
    name: str
    number: str
    number_normalized: str
    printed_total: Optional[int]
    collection_id: str
    collection_name: str
    collection_code: str
    variants: Tuple[Variant, ...] = ()


@dataclass(frozen=True)
class RetrievalResult:
    candidates: Tuple[CatalogItem, ...]
    strategy: RetrievalStrategy


@dataclass(frozen=True)
class ConfidenceSignals:
    """The six match signals, each in [0, 1]"""
    name: float
    number: float
    denominator: float
    expansion: float
    variant: float
    normalization: float

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Signal {f.name} out of range: {value}")

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in SIGNAL_NAMES}


@dataclass(frozen=True)
class WeightSet:
    """Immutable, versioned set of signal weights summing to 1.0.

    A calibration run produces a new WeightSet with a higher version; the
    registry swaps the reference. Instances are never modified.
    """
    name: float
    number: float
    denominator: float
    expansion: float
    variant: float
    normalization: float
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        weights = self.as_dict()
        for signal, weight in weights.items():
            if weight < 0:
                raise ValueError(f"Weight for {signal} must be non-negative, got {weight}")
        total = sum(weights.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Weights must sum to 1.0, got {total:.4f}")

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in SIGNAL_NAMES}

    @classmethod
    def from_dict(
        cls,
        weights: Mapping[str, float],
        version: int = 0,
        created_at: Optional[datetime] = None,
    ) -> "WeightSet":
        missing = [name for name in SIGNAL_NAMES if name not in weights]
        if missing:
            raise ValueError(f"Missing weights: {', '.join(missing)}")
        kwargs: Dict[str, Any] = {name: float(weights[name]) for name in SIGNAL_NAMES}
        kwargs["version"] = version
        if created_at is not None:
            kwargs["created_at"] = created_at
        return cls(**kwargs)


DEFAULT_WEIGHTS = WeightSet(
    name=0.30,
    number=0.15,
    denominator=0.25,
    expansion=0.10,
    variant=0.10,
    normalization=0.10,
    version=0,
    created_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
)


@dataclass(frozen=True)
class MatchConfidence:
    """Signals plus composite; junk_penalty is already subtracted from composite"""
    signals: ConfidenceSignals
    composite: float
    junk_penalty: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        data = self.signals.as_dict()
        data["composite"] = self.composite
        data["junk_penalty"] = self.junk_penalty
        return data


@dataclass(frozen=True)
class MatchResult:
    listing_id: str
    catalog_id: str
    variant_id: str
    item_name: str
    variant_name: str
    item_number_key: Optional[str]
    confidence: MatchConfidence
    retrieval_strategy: RetrievalStrategy
    variant_resolution_method: VariantResolutionMethod
    weights_version: int


@dataclass(frozen=True)
class MatchOutcome:
    """Either a MatchResult or a rejection reason; rejections are values"""
    matched: bool
    result: Optional[MatchResult] = None
    rejection_reason: Optional[RejectionReason] = None
    detail: Optional[str] = None
    retrieval_strategy: Optional[RetrievalStrategy] = None

    @classmethod
    def success(cls, result: MatchResult) -> "MatchOutcome":
        return cls(matched=True, result=result, retrieval_strategy=result.retrieval_strategy)

    @classmethod
    def rejected(
        cls,
        reason: RejectionReason,
        detail: Optional[str] = None,
        retrieval_strategy: Optional[RetrievalStrategy] = None,
    ) -> "MatchOutcome":
        return cls(
            matched=False,
            rejection_reason=reason,
            detail=detail,
            retrieval_strategy=retrieval_strategy,
        )


class ReviewReason(str, Enum):
    """Why a reviewer marked a match incorrect"""
    WRONG_ITEM = "wrong_item"
    WRONG_SET = "wrong_set"
    WRONG_VARIANT = "wrong_variant"
    WRONG_CONDITION = "wrong_condition"
    WRONG_PRICE = "wrong_price"


# Reasons that indicate a retrieval/ranking error and feed confusion memory
MATCH_ERROR_REASONS = frozenset({
    ReviewReason.WRONG_ITEM,
    ReviewReason.WRONG_SET,
    ReviewReason.WRONG_VARIANT,
})


@dataclass(frozen=True)
class ConfusionRecord:
    item_number_key: str
    wrong_catalog_id: str
    reason: ReviewReason
    created_at: datetime
    correct_catalog_id: Optional[str] = None


@dataclass(frozen=True)
class ScoredCandidate:
    """Candidate with its validation scores and selection score"""
    item: CatalogItem
    name_score: float
    expansion_score: float
    confusion_adjustment: float = 0.0

    @property
    def selection_score(self) -> float:
        return 0.7 * self.name_score + 0.3 * self.expansion_score + self.confusion_adjustment


def parse_price_map(data: Optional[Mapping[str, Any]]) -> Mapping[str, PricePoint]:
    """Parse {condition: {low, market}} JSON; a nested "raw" key is unwrapped"""
    if not data:
        return MappingProxyType({})
    if isinstance(data.get("raw"), Mapping):
        data = data["raw"]
    prices = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            prices[key] = PricePoint(low=value.get("low"), market=value.get("market"))
    return MappingProxyType(prices)
