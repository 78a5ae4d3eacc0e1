"""
Domain models for listing signal extraction.

Raw listings arrive from the marketplace-ingestion collaborator and are
validated with Pydantic. Everything extraction produces is an immutable
dataclass: a NormalizedListing is created once per listing and only read
afterwards.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator


class ListingAspect(BaseModel):
    """Seller-provided name/value attribute (e.g. "Card Name": "Charizard ex")"""
    name: str
    value: str


class DescriptorValue(BaseModel):
    """Descriptor value in the object form some marketplace APIs return"""
    content: str


class ConditionDescriptor(BaseModel):
    """Structured condition descriptor.

    `name` is either a numeric descriptor id ("27501") or its text name
    ("Professional Grader"); values may be plain strings or {"content": ...}.
    """
    name: str
    values: List[Union[str, DescriptorValue]] = Field(default_factory=list)

    def first_value(self) -> Optional[str]:
        """Return the first descriptor value as text, or None."""
        if not self.values:
            return None
        value = self.values[0]
        if isinstance(value, DescriptorValue):
            return value.content
        return value

    def all_values(self) -> List[str]:
        return [v.content if isinstance(v, DescriptorValue) else v for v in self.values]


class RawListing(BaseModel):
    """Raw listing record as produced by marketplace ingestion"""
    id: str
    title: str
    seller_name: Optional[str] = None
    aspects: List[ListingAspect] = Field(default_factory=list)
    condition_descriptors: List[ConditionDescriptor] = Field(default_factory=list)
    condition_text: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("title must not be blank")
        return value


class ConditionCode(str, Enum):
    """Raw condition buckets, best first"""
    NM = "NM"
    LP = "LP"
    MP = "MP"
    HP = "HP"


class ConditionSource(str, Enum):
    """Which resolver stage produced a condition"""
    CONDITION_DESCRIPTOR = "condition_descriptor"
    STRUCTURED_ASPECT = "structured_aspect"
    MARKETPLACE_CONDITION = "marketplace_condition"
    TITLE = "title"
    DEFAULT = "default"


class SignalSource(str, Enum):
    """Provenance tag for merged listing fields"""
    STRUCTURED = "structured"
    TITLE = "title"


class RejectionReason(str, Enum):
    """Reasons a listing produces no match"""
    BULK_LOT = "bulk_lot"
    FAKE = "fake"
    NON_CARD = "non_card"
    NON_ENGLISH = "non_english"
    NO_CANDIDATES = "no_candidates"
    NAME_GATE = "name_gate"
    NO_PRICED_VARIANT = "no_priced_variant"
    BELOW_CONFIDENCE_GATE = "below_confidence_gate"


@dataclass(frozen=True)
class CleanedTitle:
    cleaned: str
    original: str


@dataclass(frozen=True)
class ItemNumber:
    """Item number parsed from a listing (e.g. 006/197 -> value=6, denominator=197)"""
    value: int
    prefix: Optional[str] = None
    denominator: Optional[int] = None

    @property
    def key(self) -> str:
        """Normalized item number used for catalog lookups and confusion memory"""
        return str(self.value)


@dataclass(frozen=True)
class ConditionResult:
    """Resolved condition plus grading details and the stage that produced it"""
    code: ConditionCode
    source: ConditionSource
    is_graded: bool = False
    grading_company: Optional[str] = None
    grade: Optional[str] = None
    cert_number: Optional[str] = None
    raw_descriptor_ids: tuple = ()


@dataclass(frozen=True)
class StructuredSignals:
    """Fields read from seller-provided aspects"""
    card_name: Optional[str] = None
    card_number: Optional[str] = None
    set_name: Optional[str] = None
    rarity: Optional[str] = None
    language: Optional[str] = None
    grading_company: Optional[str] = None
    grade: Optional[str] = None
    year: Optional[str] = None


@dataclass(frozen=True)
class TitleSignals:
    """Fields parsed from the cleaned title"""
    item_number: Optional[ItemNumber] = None
    variant: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class NormalizedListing:
    """Listing with every extracted signal and per-field provenance.

    Immutable once produced; consumed only by the matcher.
    """
    id: str
    raw_title: str
    cleaned_title: str
    condition: ConditionResult
    seller_name: Optional[str] = None
    extracted_name: Optional[str] = None
    extracted_number: Optional[ItemNumber] = None
    extracted_set_name: Optional[str] = None
    detected_variant: Optional[str] = None
    language: Optional[str] = None
    has_structured_data: bool = False
    provenance: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def signal_count(self) -> int:
        """Number of identifying fields that were successfully extracted"""
        fields = (
            self.extracted_name,
            self.extracted_number,
            self.extracted_set_name,
            self.detected_variant,
        )
        return sum(1 for value in fields if value is not None)

    @property
    def normalization_score(self) -> float:
        """Extraction quality signal: 0.25 base plus 0.25 per extracted field"""
        return min(1.0, 0.25 + 0.25 * self.signal_count)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extraction: either a rejection reason or a normalized listing"""
    rejected: bool
    reason: Optional[RejectionReason] = None
    listing: Optional[NormalizedListing] = None
    detail: Optional[Any] = None

    @classmethod
    def reject(cls, reason: RejectionReason, detail: Any = None) -> "ExtractionResult":
        return cls(rejected=True, reason=reason, detail=detail)

    @classmethod
    def accept(cls, listing: NormalizedListing) -> "ExtractionResult":
        return cls(rejected=False, listing=listing)
