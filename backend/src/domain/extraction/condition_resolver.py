"""Condition resolution as an ordered chain of resolvers.

Each resolver is a pure function ``(ConditionInput) -> ConditionResult | None``
and is consulted only when every earlier resolver returned None:

1. Structured condition descriptors (numeric ids or text names)
2. "Card Condition" seller aspect
3. Marketplace top-level condition text
4. Title scan (grading company + grade, then raw condition keywords)
5. Default LP

Marketplace descriptor ids:
- 27501 professional grader, 27502 grade, 27503 certification number
- 40001 ungraded card condition
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from observability.metrics import unmapped_condition_descriptors_total
from .models import (
    ConditionCode,
    ConditionDescriptor,
    ConditionResult,
    ConditionSource,
    ListingAspect,
)

logger = logging.getLogger(__name__)

GRADER_DESCRIPTOR = "27501"
GRADE_DESCRIPTOR = "27502"
CERT_DESCRIPTOR = "27503"
UNGRADED_CONDITION_DESCRIPTOR = "40001"

DESCRIPTOR_TEXT_NAMES: Dict[str, str] = {
    "card condition": UNGRADED_CONDITION_DESCRIPTOR,
    "professional grader": GRADER_DESCRIPTOR,
    "grade": GRADE_DESCRIPTOR,
    "certification number": CERT_DESCRIPTOR,
}

GRADER_CODES: Dict[str, str] = {
    "275010": "PSA",
    "275011": "BCCG",
    "275012": "BVG",
    "275013": "BGS",
    "275014": "CSG",
    "275015": "CGC",
    "275016": "SGC",
    "275017": "KSA",
    "275018": "GMA",
    "275019": "HGA",
    "2750110": "ISA",
    "2750111": "PCA",
    "2750112": "GSG",
    "2750113": "PGS",
    "2750114": "MNT",
    "2750115": "TAG",
    "2750116": "Rare Edition",
    "2750117": "RCG",
    "2750118": "PCG",
    "2750119": "Ace Grading",
    "2750120": "CGA",
    "2750121": "TCG",
    "2750122": "ARK",
    "2750123": "Other",
}

GRADER_NAMES: Dict[str, str] = {name.lower(): name for name in GRADER_CODES.values()}

GRADE_CODES: Dict[str, str] = {
    "275020": "10",
    "275021": "9.5",
    "275022": "9",
    "275023": "8.5",
    "275024": "8",
    "275025": "7.5",
    "275026": "7",
    "275027": "6.5",
    "275028": "6",
    "275029": "5.5",
    "2750210": "5",
    "2750211": "4.5",
    "2750212": "4",
    "2750213": "3.5",
    "2750214": "3",
    "2750215": "2.5",
    "2750216": "2",
    "2750217": "1.5",
    "2750218": "1",
    "2750219": "Authentic",
    "2750220": "Authentic Altered",
    "2750221": "Authentic - Trimmed",
    "2750222": "Authentic - Coloured",
}

GRADE_NAMES: Dict[str, str] = {grade.lower(): grade for grade in GRADE_CODES.values()}

UNGRADED_CONDITION_CODES: Dict[str, ConditionCode] = {
    "400010": ConditionCode.NM,
    "400015": ConditionCode.LP,
    "400016": ConditionCode.MP,
    "400017": ConditionCode.HP,
}

# Free-text raw condition values shared by descriptors and marketplace text
CONDITION_TEXT: Dict[str, ConditionCode] = {
    "near mint or better": ConditionCode.NM,
    "near mint": ConditionCode.NM,
    "mint": ConditionCode.NM,
    "lightly played (excellent)": ConditionCode.LP,
    "lightly played": ConditionCode.LP,
    "excellent": ConditionCode.LP,
    "moderately played (very good)": ConditionCode.MP,
    "moderately played": ConditionCode.MP,
    "very good": ConditionCode.MP,
    "heavily played (poor)": ConditionCode.HP,
    "heavily played": ConditionCode.HP,
    "poor": ConditionCode.HP,
}

ASPECT_CONDITION_TEXT: Dict[str, ConditionCode] = {
    **CONDITION_TEXT,
    "good": ConditionCode.MP,
}

MARKETPLACE_CONDITION_TEXT: Dict[str, ConditionCode] = {
    **CONDITION_TEXT,
    "like new": ConditionCode.NM,
}

CONDITION_ASPECT_NAME = "card condition"

TITLE_GRADING_PATTERN = re.compile(
    r"\b(psa|bgs|cgc|sgc|ace|tag|ags|gma|hga|pca|mnt)\s*(10|[1-9](?:\.5)?)\b"
)

TITLE_CONDITION_PATTERNS: List[Tuple[re.Pattern, ConditionCode]] = [
    (re.compile(r"\bnear mint\b"), ConditionCode.NM),
    (re.compile(r"\bnm[\s/+\-]?m?\b"), ConditionCode.NM),
    (re.compile(r"\bnm\+?\b"), ConditionCode.NM),
    (re.compile(r"\bmint\b"), ConditionCode.NM),
    (re.compile(r"\blightly played\b"), ConditionCode.LP),
    (re.compile(r"\blp\b"), ConditionCode.LP),
    (re.compile(r"\bexcellent\b"), ConditionCode.LP),
    (re.compile(r"\bmoderately played\b"), ConditionCode.MP),
    (re.compile(r"\bmp\b"), ConditionCode.MP),
    (re.compile(r"\bheavily played\b"), ConditionCode.HP),
    (re.compile(r"\bhp\b"), ConditionCode.HP),
    (re.compile(r"\bpoor\b"), ConditionCode.HP),
]

DEFAULT_CONDITION = ConditionCode.LP


@dataclass(frozen=True)
class ConditionInput:
    """Everything the resolvers may look at"""
    cleaned_title: str
    descriptors: Sequence[ConditionDescriptor] = ()
    aspects: Sequence[ListingAspect] = ()
    condition_text: Optional[str] = None
    raw_descriptor_ids: tuple = field(default=())


def _warn_unmapped(descriptor_id: str, value: str) -> None:
    logger.warning(f"Unmapped condition descriptor value {value!r} for descriptor {descriptor_id}")
    unmapped_condition_descriptors_total.labels(descriptor=descriptor_id).inc()


def _lookup(value: str, codes: Dict[str, str], names: Dict[str, str]) -> Optional[str]:
    return codes.get(value) or names.get(value.lower().strip())


def resolve_from_descriptors(data: ConditionInput) -> Optional[ConditionResult]:
    """Stage 1: structured condition descriptors.

    A grading company makes the listing graded and fixes its raw bucket
    to NM whatever the grade. Unmapped values are counted, logged and
    skipped.
    """
    if not data.descriptors:
        return None

    grading_company = None
    grade = None
    cert_number = None
    raw_condition = None

    for descriptor in data.descriptors:
        value = descriptor.first_value()
        if not value:
            continue

        name = descriptor.name.strip()
        descriptor_id = DESCRIPTOR_TEXT_NAMES.get(name.lower(), name)

        if descriptor_id == GRADER_DESCRIPTOR:
            company = _lookup(value, GRADER_CODES, GRADER_NAMES)
            if company is None:
                _warn_unmapped(descriptor_id, value)
            else:
                grading_company = company
        elif descriptor_id == GRADE_DESCRIPTOR:
            mapped_grade = _lookup(value, GRADE_CODES, GRADE_NAMES)
            if mapped_grade is None:
                _warn_unmapped(descriptor_id, value)
            else:
                grade = mapped_grade
        elif descriptor_id == CERT_DESCRIPTOR:
            cert_number = value.strip()
        elif descriptor_id == UNGRADED_CONDITION_DESCRIPTOR:
            code = UNGRADED_CONDITION_CODES.get(value) or CONDITION_TEXT.get(value.lower().strip())
            if code is None:
                _warn_unmapped(descriptor_id, value)
            else:
                raw_condition = code
        else:
            _warn_unmapped(descriptor_id, value)

    if grading_company:
        return ConditionResult(
            code=ConditionCode.NM,
            source=ConditionSource.CONDITION_DESCRIPTOR,
            is_graded=True,
            grading_company=grading_company,
            grade=grade,
            cert_number=cert_number,
            raw_descriptor_ids=data.raw_descriptor_ids,
        )

    if raw_condition:
        return ConditionResult(
            code=raw_condition,
            source=ConditionSource.CONDITION_DESCRIPTOR,
            raw_descriptor_ids=data.raw_descriptor_ids,
        )

    return None


def resolve_from_aspect(data: ConditionInput) -> Optional[ConditionResult]:
    """Stage 2: the seller's "Card Condition" aspect"""
    for aspect in data.aspects:
        if aspect.name.strip().lower() != CONDITION_ASPECT_NAME:
            continue
        code = ASPECT_CONDITION_TEXT.get(aspect.value.strip().lower())
        if code:
            return ConditionResult(
                code=code,
                source=ConditionSource.STRUCTURED_ASPECT,
                raw_descriptor_ids=data.raw_descriptor_ids,
            )
    return None


def resolve_from_marketplace_text(data: ConditionInput) -> Optional[ConditionResult]:
    """Stage 3: top-level marketplace condition string"""
    if not data.condition_text:
        return None
    code = MARKETPLACE_CONDITION_TEXT.get(data.condition_text.strip().lower())
    if code is None:
        return None
    return ConditionResult(
        code=code,
        source=ConditionSource.MARKETPLACE_CONDITION,
        raw_descriptor_ids=data.raw_descriptor_ids,
    )


def resolve_from_title(data: ConditionInput) -> Optional[ConditionResult]:
    """Stage 4: grading mention ("psa 10"), then raw condition keywords"""
    title = data.cleaned_title.lower()

    match = TITLE_GRADING_PATTERN.search(title)
    if match:
        company = GRADER_NAMES.get(match.group(1), match.group(1).upper())
        return ConditionResult(
            code=ConditionCode.NM,
            source=ConditionSource.TITLE,
            is_graded=True,
            grading_company=company,
            grade=match.group(2),
            raw_descriptor_ids=data.raw_descriptor_ids,
        )

    for pattern, code in TITLE_CONDITION_PATTERNS:
        if pattern.search(title):
            return ConditionResult(
                code=code,
                source=ConditionSource.TITLE,
                raw_descriptor_ids=data.raw_descriptor_ids,
            )
    return None


def resolve_default(data: ConditionInput) -> ConditionResult:
    """Stage 5: pessimistic default, never mint"""
    return ConditionResult(
        code=DEFAULT_CONDITION,
        source=ConditionSource.DEFAULT,
        raw_descriptor_ids=data.raw_descriptor_ids,
    )


ConditionResolver = Callable[[ConditionInput], Optional[ConditionResult]]

CONDITION_RESOLVERS: List[ConditionResolver] = [
    resolve_from_descriptors,
    resolve_from_aspect,
    resolve_from_marketplace_text,
    resolve_from_title,
    resolve_default,
]


def collect_descriptor_ids(descriptors: Sequence[ConditionDescriptor]) -> tuple:
    """Descriptor names and values, in order, for the audit trail"""
    ids: List[str] = []
    for descriptor in descriptors:
        ids.append(descriptor.name)
        ids.extend(descriptor.all_values())
    return tuple(ids)


def resolve_condition(
    cleaned_title: str,
    descriptors: Sequence[ConditionDescriptor] = (),
    aspects: Sequence[ListingAspect] = (),
    condition_text: Optional[str] = None,
    resolvers: Optional[Sequence[ConditionResolver]] = None,
) -> ConditionResult:
    """Run the resolver chain and return the first result.

    Args:
        cleaned_title: Normalized listing title
        descriptors: Structured condition descriptors
        aspects: Seller aspects
        condition_text: Marketplace condition string
        resolvers: Override of the resolver chain (defaults to CONDITION_RESOLVERS)

    Returns:
        ConditionResult; the default stage guarantees one is always produced
    """
    data = ConditionInput(
        cleaned_title=cleaned_title,
        descriptors=tuple(descriptors),
        aspects=tuple(aspects),
        condition_text=condition_text,
        raw_descriptor_ids=collect_descriptor_ids(descriptors),
    )
    for resolver in resolvers or CONDITION_RESOLVERS:
        result = resolver(data)
        if result is not None:
            return result
    return resolve_default(data)
