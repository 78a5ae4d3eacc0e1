"""Listing matcher.

Pipeline for one NormalizedListing:
1. Candidate retrieval cascade
2. Name and expansion validation, name hard gate
3. Confusion-memory ranking adjustment and candidate selection
4. Variant resolution
5. Confidence scoring with the active weight set, minus the junk penalty
6. Absolute confidence gate

Every "no match" is returned as a MatchOutcome with a RejectionReason.
Catalog and store I/O errors propagate unchanged.
"""

import logging
import time
from typing import List, Optional

from config import settings
from domain.extraction.junk_scorer import JunkScore, JunkSignalCache, score_junk_signals
from domain.extraction.models import NormalizedListing, RawListing, RejectionReason
from domain.extraction.pipeline import extract_signals
from observability.correlation import correlation_scope
from observability.metrics import (
    listing_rejections_total,
    listings_processed_total,
    match_confidence_histogram,
    match_duration_seconds,
    retrieval_strategy_total,
)
from .candidate_retriever import CandidateRetriever
from .confidence import (
    WeightRegistry,
    apply_junk_penalty,
    compute_composite,
    denominator_signal,
    number_signal,
)
from .confusion_memory import ConfusionLookup, ranking_adjustment
from .gates import passes_gate
from .models import (
    CatalogItem,
    ConfidenceSignals,
    MatchConfidence,
    MatchOutcome,
    MatchResult,
    ScoredCandidate,
)
from .ports import MatchRecordStorePort
from .validators import (
    name_score_without_name,
    passes_name_gate,
    validate_expansion,
    validate_name,
)
from .variant_resolver import resolve_variant

logger = logging.getLogger(__name__)


class ListingMatcher:
    """Resolves a NormalizedListing to one catalog item and priced variant.

    Shared state (the weight registry and the confusion lookup) is only
    read, one reference per call, so instances are safe to use from
    concurrent workers.
    """

    def __init__(
        self,
        retriever: CandidateRetriever,
        weights: WeightRegistry,
        confusion: Optional[ConfusionLookup] = None,
    ):
        self.retriever = retriever
        self.weights = weights
        self.confusion = confusion or ConfusionLookup()

    def score_candidates(
        self,
        listing: NormalizedListing,
        candidates: List[CatalogItem],
    ) -> List[ScoredCandidate]:
        """Validate candidates, dropping those that fail the name hard gate.

        Args:
            listing: Normalized listing
            candidates: Retrieved candidates in retrieval order

        Returns:
            Surviving candidates, still in retrieval order
        """
        number_key = listing.extracted_number.key if listing.extracted_number else None
        records = self.confusion.lookup(number_key)

        scored = []
        for item in candidates:
            if listing.extracted_name:
                name_score = validate_name(listing.extracted_name, item.name)
                if not passes_name_gate(name_score):
                    logger.debug(
                        f"Candidate {item.catalog_id} failed name gate ({name_score:.3f})",
                        extra={"catalog_id": item.catalog_id},
                    )
                    continue
            else:
                name_score = name_score_without_name(len(candidates))

            expansion_score = validate_expansion(
                listing.extracted_set_name, item.collection_name, item.collection_code
            )
            adjustment = ranking_adjustment(item.catalog_id, records) if records else 0.0
            scored.append(ScoredCandidate(
                item=item,
                name_score=round(name_score, 4),
                expansion_score=round(expansion_score, 4),
                confusion_adjustment=adjustment,
            ))
        return scored

    @staticmethod
    def select(scored: List[ScoredCandidate]) -> ScoredCandidate:
        """Highest selection score; ties keep retrieval order"""
        best = scored[0]
        for candidate in scored[1:]:
            if candidate.selection_score > best.selection_score:
                best = candidate
        return best

    def match(self, listing: NormalizedListing, junk_score: Optional[JunkScore] = None) -> MatchOutcome:
        """Match a listing against the catalog.

        Args:
            listing: Normalized listing from extraction
            junk_score: Learned junk penalty for this listing, if scored

        Returns:
            MatchOutcome with a MatchResult, or a rejection reason
        """
        retrieval = self.retriever.retrieve(listing)
        if not retrieval.candidates:
            return MatchOutcome.rejected(
                RejectionReason.NO_CANDIDATES, retrieval_strategy=retrieval.strategy
            )

        scored = self.score_candidates(listing, list(retrieval.candidates))
        if not scored:
            return MatchOutcome.rejected(
                RejectionReason.NAME_GATE,
                detail=f"{len(retrieval.candidates)} candidates below name gate",
                retrieval_strategy=retrieval.strategy,
            )

        best = self.select(scored)
        resolution = resolve_variant(listing.detected_variant, best.item.variants)
        if resolution is None:
            return MatchOutcome.rejected(
                RejectionReason.NO_PRICED_VARIANT,
                detail=best.item.catalog_id,
                retrieval_strategy=retrieval.strategy,
            )

        number = listing.extracted_number
        signals = ConfidenceSignals(
            name=best.name_score,
            number=number_signal(number),
            denominator=denominator_signal(
                number.denominator if number else None, best.item.printed_total
            ),
            expansion=best.expansion_score,
            variant=resolution.confidence,
            normalization=listing.normalization_score,
        )

        weights = self.weights.current()
        composite = compute_composite(signals, weights)
        penalty = junk_score.penalty if junk_score else 0.0
        final = apply_junk_penalty(composite, penalty)

        if not passes_gate(final):
            return MatchOutcome.rejected(
                RejectionReason.BELOW_CONFIDENCE_GATE,
                detail=f"composite {final:.3f}",
                retrieval_strategy=retrieval.strategy,
            )

        result = MatchResult(
            listing_id=listing.id,
            catalog_id=best.item.catalog_id,
            variant_id=resolution.variant.variant_id,
            item_name=best.item.name,
            variant_name=resolution.variant.name,
            item_number_key=number.key if number else None,
            confidence=MatchConfidence(signals=signals, composite=final, junk_penalty=penalty),
            retrieval_strategy=retrieval.strategy,
            variant_resolution_method=resolution.method,
            weights_version=weights.version,
        )
        return MatchOutcome.success(result)


class ListingMatchService:
    """Runs extraction and matching for raw listings.

    Binds the listing id as correlation id, logs and counts every outcome
    and, when a record store is configured, persists accepted matches for
    human review.
    """

    def __init__(
        self,
        matcher: ListingMatcher,
        junk_cache: Optional[JunkSignalCache] = None,
        record_store: Optional[MatchRecordStorePort] = None,
        target_language: Optional[str] = None,
    ):
        self.matcher = matcher
        self.junk_cache = junk_cache
        self.record_store = record_store
        self.target_language = target_language or settings.TARGET_LANGUAGE

    def process(self, raw: RawListing) -> MatchOutcome:
        """Extract signals from a raw listing and match it.

        Args:
            raw: Raw marketplace listing

        Returns:
            MatchOutcome
        """
        with correlation_scope(raw.id):
            started = time.perf_counter()
            try:
                outcome = self._process(raw)
            finally:
                match_duration_seconds.observe(time.perf_counter() - started)
            self._observe(raw, outcome)
            return outcome

    def _process(self, raw: RawListing) -> MatchOutcome:
        extraction = extract_signals(raw, self.target_language)
        if extraction.rejected:
            return MatchOutcome.rejected(extraction.reason, detail=extraction.detail)

        listing = extraction.listing
        junk_score = None
        if self.junk_cache is not None:
            junk_score = score_junk_signals(
                listing.cleaned_title, listing.seller_name, self.junk_cache.snapshot()
            )

        outcome = self.matcher.match(listing, junk_score)
        if outcome.matched and self.record_store is not None:
            self.record_store.save(
                outcome.result, listing.raw_title, condition=listing.condition.code.value
            )
        return outcome

    def _observe(self, raw: RawListing, outcome: MatchOutcome) -> None:
        if outcome.retrieval_strategy is not None:
            retrieval_strategy_total.labels(strategy=outcome.retrieval_strategy.value).inc()

        if outcome.matched:
            result = outcome.result
            listings_processed_total.labels(outcome="matched").inc()
            match_confidence_histogram.observe(result.confidence.composite)
            logger.info(
                f"Matched listing {raw.id} to {result.catalog_id}/{result.variant_id} "
                f"(composite {result.confidence.composite:.3f})",
                extra={
                    "listing_id": raw.id,
                    "catalog_id": result.catalog_id,
                    "strategy": result.retrieval_strategy.value,
                    "composite": result.confidence.composite,
                    "weights_version": result.weights_version,
                },
            )
            return

        reason = outcome.rejection_reason.value
        listings_processed_total.labels(outcome="rejected").inc()
        listing_rejections_total.labels(reason=reason).inc()
        logger.info(
            f"Listing {raw.id} rejected: {reason}",
            extra={"listing_id": raw.id, "rejection_reason": reason},
        )
