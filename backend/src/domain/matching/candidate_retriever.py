"""Candidate retrieval cascade.

Strategies, first non-empty result wins:
1. number + denominator (item number within a set of known printed total)
2. number + prefix (promo numbers such as SWSH050)
3. number only, capped at 50; narrowed by collection when >5 and a set
   name is known
4. fuzzy name, capped at 20, only when no number was extracted
"""

import logging
from typing import List, Optional

from domain.extraction.models import NormalizedListing
from .models import CatalogItem, RetrievalResult, RetrievalStrategy
from .ports import CatalogReaderPort

logger = logging.getLogger(__name__)

NUMBER_ONLY_LIMIT = 50
NAME_FUZZY_LIMIT = 20
NARROWING_THRESHOLD = 5


def narrow_by_collection(candidates: List[CatalogItem], set_name: str) -> List[CatalogItem]:
    """Candidates whose collection name contains the set name, or whose code equals it.

    Returns the input unchanged when nothing matches.
    """
    hint = set_name.lower().strip()
    narrowed = [
        c for c in candidates
        if hint in c.collection_name.lower() or c.collection_code.lower() == hint
    ]
    return narrowed or candidates


class CandidateRetriever:
    """Runs the retrieval cascade against a CatalogReaderPort."""

    def __init__(self, catalog: CatalogReaderPort):
        self.catalog = catalog

    def retrieve(self, listing: NormalizedListing) -> RetrievalResult:
        """Find candidate catalog items for a listing.

        Args:
            listing: Normalized listing

        Returns:
            RetrievalResult with the candidates and the strategy that found them

        Raises:
            Whatever the catalog adapter raises on I/O failure
        """
        number = listing.extracted_number

        if number is not None and number.denominator is not None:
            candidates = self.catalog.by_number_and_denominator(number.key, number.denominator)
            if candidates:
                return self._result(candidates, RetrievalStrategy.NUMBER_DENOMINATOR)

        if number is not None and number.prefix:
            candidates = self.catalog.by_number_and_prefix(number.key, number.prefix)
            if candidates:
                return self._result(candidates, RetrievalStrategy.NUMBER_PREFIX)

        if number is not None:
            candidates = self.catalog.by_number(number.key, limit=NUMBER_ONLY_LIMIT)
            if listing.extracted_set_name and len(candidates) > NARROWING_THRESHOLD:
                candidates = narrow_by_collection(candidates, listing.extracted_set_name)
            if candidates:
                return self._result(candidates, RetrievalStrategy.NUMBER_ONLY)
            # A number was extracted; name-only search is not used
            return RetrievalResult(candidates=(), strategy=RetrievalStrategy.NONE)

        if listing.extracted_name:
            candidates = self.catalog.by_name_fuzzy(listing.extracted_name, limit=NAME_FUZZY_LIMIT)
            if candidates:
                return self._result(candidates, RetrievalStrategy.NAME_FUZZY)

        return RetrievalResult(candidates=(), strategy=RetrievalStrategy.NONE)

    def _result(self, candidates: List[CatalogItem], strategy: RetrievalStrategy) -> RetrievalResult:
        logger.debug(f"Retrieved {len(candidates)} candidates via {strategy.value}")
        return RetrievalResult(candidates=tuple(candidates), strategy=strategy)
