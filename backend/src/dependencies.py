"""Wiring for long-lived matcher processes.

build_listing_match_service binds the domain services to SQLAlchemy
repositories on one session. The weight registry, confusion memory and
junk signal cache all refresh from the store on their TTLs, so weights
applied by the calibration worker and new reviews reach this process
without a restart.

Usage:
    db = SessionLocal()
    service = build_listing_match_service(db)
    outcome = service.process(raw_listing)
    db.commit()
"""

import time
from typing import Callable

from sqlalchemy.orm import Session

from config import settings
from domain.extraction.junk_scorer import JunkSignalCache
from domain.matching.candidate_retriever import CandidateRetriever
from domain.matching.confidence import WeightRegistry
from domain.matching.confusion_memory import ConfusionMemory
from domain.matching.matcher import ListingMatcher, ListingMatchService
from infrastructure.repositories import (
    CatalogRepository,
    ConfusionRepository,
    JunkReportRepository,
    MatchRecordRepository,
    WeightRepository,
)


def build_weight_registry(db: Session, clock: Callable[[], float] = time.monotonic) -> WeightRegistry:
    """Registry that reloads the latest stored weight set every WEIGHTS_CACHE_TTL_SECONDS"""
    return WeightRegistry(
        store=WeightRepository(db),
        ttl_seconds=settings.WEIGHTS_CACHE_TTL_SECONDS,
        clock=clock,
    )


def build_listing_match_service(
    db: Session,
    clock: Callable[[], float] = time.monotonic,
) -> ListingMatchService:
    """Build a ListingMatchService backed by the database.

    Args:
        db: Session used by every repository; the caller commits
        clock: Monotonic clock for the cache TTLs

    Returns:
        ListingMatchService that persists accepted matches
    """
    matcher = ListingMatcher(
        CandidateRetriever(CatalogRepository(db)),
        build_weight_registry(db, clock=clock),
        ConfusionMemory(
            ConfusionRepository(db),
            ttl_seconds=settings.CONFUSION_CACHE_TTL_SECONDS,
            clock=clock,
        ),
    )
    junk_cache = JunkSignalCache(
        JunkReportRepository(db),
        ttl_seconds=settings.JUNK_CACHE_TTL_SECONDS,
        clock=clock,
    )
    return ListingMatchService(
        matcher,
        junk_cache=junk_cache,
        record_store=MatchRecordRepository(db),
        target_language=settings.TARGET_LANGUAGE,
    )
