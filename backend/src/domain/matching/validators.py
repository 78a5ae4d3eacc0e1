"""Name and expansion validation.

Scores how well a candidate's canonical name and collection agree with
the text extracted from the listing. Pure functions, no I/O.
"""

from typing import Optional

from rapidfuzz.distance import Jaro

NAME_HARD_GATE = 0.60

# Name score when no name was extracted
NO_NAME_SCORE = 0.50
NO_NAME_AMBIGUOUS_SCORE = 0.30

CONTAINMENT_FLOOR_NAME = 0.80
CONTAINMENT_FLOOR_EXPANSION = 0.75

NEUTRAL_EXPANSION_SCORE = 0.50
EXPANSION_CODE_SCORE = 0.95

WINKLER_PREFIX_LIMIT = 4
WINKLER_SCALING = 0.1


def jaro_winkler(a: str, b: str) -> float:
    """Jaro similarity with the Winkler common-prefix boost.

    The boost is applied at every Jaro level (no 0.7 threshold), prefix
    capped at 4 characters, scaling factor 0.1.
    """
    jaro = Jaro.similarity(a, b)
    prefix = 0
    for left, right in zip(a[:WINKLER_PREFIX_LIMIT], b[:WINKLER_PREFIX_LIMIT]):
        if left != right:
            break
        prefix += 1
    return jaro + prefix * WINKLER_SCALING * (1 - jaro)


def _containment_ratio(a: str, b: str) -> float:
    return min(len(a), len(b)) / max(len(a), len(b))


def validate_name(extracted: str, candidate: str) -> float:
    """Similarity between an extracted name and a candidate's name.

    Args:
        extracted: Name extracted from the listing
        candidate: Canonical catalog name

    Returns:
        1.0 exact, max(0.80, shorter/longer) on containment, else Jaro-Winkler
    """
    a = extracted.lower().strip()
    b = candidate.lower().strip()

    if a == b:
        return 1.0
    if a and b and (a in b or b in a):
        return max(CONTAINMENT_FLOOR_NAME, _containment_ratio(a, b))
    return jaro_winkler(a, b)


def passes_name_gate(score: float) -> bool:
    return score >= NAME_HARD_GATE


def name_score_without_name(candidate_count: int) -> float:
    """Name signal when the listing carried no name; several candidates are riskier"""
    return NO_NAME_AMBIGUOUS_SCORE if candidate_count > 1 else NO_NAME_SCORE


def validate_expansion(
    extracted_set_name: Optional[str],
    collection_name: str,
    collection_code: str,
) -> float:
    """Agreement between an extracted set hint and a candidate's collection.

    Args:
        extracted_set_name: Set/collection name from the listing, if any
        collection_name: Candidate collection name
        collection_code: Candidate collection code (e.g. "sv3")

    Returns:
        0.50 when there is no hint; otherwise 1.0 name equality, 0.95 code
        equality, max(0.75, ratio) on containment, else Jaro-Winkler
    """
    if not extracted_set_name:
        return NEUTRAL_EXPANSION_SCORE

    extracted = extracted_set_name.lower().strip()
    name = (collection_name or "").lower().strip()
    code = (collection_code or "").lower().strip()

    if extracted == name:
        return 1.0
    if code and extracted == code:
        return EXPANSION_CODE_SCORE
    if name and (extracted in name or name in extracted):
        return max(CONTAINMENT_FLOOR_EXPANSION, _containment_ratio(extracted, name))
    return jaro_winkler(extracted, name)
