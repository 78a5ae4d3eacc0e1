"""Confusion memory.

Remembers confirmed wrong matches per normalized item number. During
candidate selection a previously-wrong candidate loses 0.15 of its
selection score and a reviewer-supplied correction gains 0.10. The
adjustment only affects ranking, never the stored confidence signals.

The in-memory snapshot is rebuilt from the store on a TTL and replaced
wholesale; only the latest record per (item number, wrong candidate) is
kept.
"""

import logging
import threading
import time
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from .models import MATCH_ERROR_REASONS, ConfusionRecord, ReviewReason
from .ports import ConfusionStorePort

logger = logging.getLogger(__name__)

CONFUSION_PENALTY = 0.15
CORRECTION_BOOST = 0.10

# item number key -> wrong catalog id -> latest record
ConfusionSnapshot = Mapping[str, Mapping[str, ConfusionRecord]]

EMPTY: Mapping[str, ConfusionRecord] = MappingProxyType({})


def build_snapshot(records: Iterable[ConfusionRecord]) -> ConfusionSnapshot:
    """Index records by item number, keeping the newest per wrong candidate"""
    table: Dict[str, Dict[str, ConfusionRecord]] = {}
    for record in records:
        by_wrong = table.setdefault(record.item_number_key, {})
        existing = by_wrong.get(record.wrong_catalog_id)
        if existing is None or record.created_at >= existing.created_at:
            by_wrong[record.wrong_catalog_id] = record
    return MappingProxyType({
        key: MappingProxyType(by_wrong) for key, by_wrong in table.items()
    })


def ranking_adjustment(candidate_id: str, records: Mapping[str, ConfusionRecord]) -> float:
    """Selection-score adjustment for one candidate.

    Args:
        candidate_id: Candidate catalog id
        records: Records for the listing's item number

    Returns:
        -0.15 per record flagging the candidate as wrong, +0.10 per record
        naming it as the correction
    """
    adjustment = 0.0
    for record in records.values():
        if record.wrong_catalog_id == candidate_id:
            adjustment -= CONFUSION_PENALTY
        if record.correct_catalog_id == candidate_id:
            adjustment += CORRECTION_BOOST
    return round(adjustment, 3)


class ConfusionLookup:
    """Read-only view the matcher consults. Empty by default."""

    def lookup(self, item_number_key: Optional[str]) -> Mapping[str, ConfusionRecord]:
        return EMPTY


class StaticConfusionLookup(ConfusionLookup):
    """Fixed snapshot; for tests and one-off batch matching"""

    def __init__(self, records: Iterable[ConfusionRecord] = ()):
        self._snapshot = build_snapshot(records)

    def lookup(self, item_number_key: Optional[str]) -> Mapping[str, ConfusionRecord]:
        if item_number_key is None:
            return EMPTY
        return self._snapshot.get(item_number_key, EMPTY)


class ConfusionMemory(ConfusionLookup):
    """Store-backed confusion table with a TTL-refreshed snapshot.

    Store failures propagate to the caller; the previous snapshot stays
    in place.
    """

    def __init__(
        self,
        store: ConfusionStorePort,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._snapshot: ConfusionSnapshot = MappingProxyType({})
        self._loaded_at: Optional[float] = None
        self._refresh_lock = threading.Lock()

    def _reload(self) -> ConfusionSnapshot:
        snapshot = build_snapshot(self.store.load_recent())
        self._snapshot = snapshot
        self._loaded_at = self._clock()
        logger.debug(f"Confusion memory refreshed: {len(snapshot)} item numbers")
        return snapshot

    def refresh(self) -> ConfusionSnapshot:
        """Rebuild the snapshot from the store and swap it in."""
        with self._refresh_lock:
            return self._reload()

    def invalidate(self) -> None:
        self._loaded_at = None

    def _is_stale(self) -> bool:
        loaded_at = self._loaded_at
        return loaded_at is None or self._clock() - loaded_at > self._ttl

    def _current(self) -> ConfusionSnapshot:
        if self._is_stale():
            with self._refresh_lock:
                # Another reader may have reloaded while this one waited
                if self._is_stale():
                    return self._reload()
        return self._snapshot

    def lookup(self, item_number_key: Optional[str]) -> Mapping[str, ConfusionRecord]:
        if item_number_key is None:
            return EMPTY
        return self._current().get(item_number_key, EMPTY)

    def record_confusion(
        self,
        item_number_key: str,
        wrong_catalog_id: str,
        reason: ReviewReason,
        correct_catalog_id: Optional[str] = None,
        match_id: Optional[Any] = None,
        listing_title: Optional[str] = None,
        signals: Optional[Dict[str, float]] = None,
    ) -> Optional[ConfusionRecord]:
        """Record a wrong match for a match-related reason.

        wrong_condition and wrong_price are not retrieval errors and are
        ignored.

        Returns:
            The stored record, or None when the reason is not recorded
        """
        reason = ReviewReason(reason)
        if reason not in MATCH_ERROR_REASONS:
            logger.debug(f"Not recording confusion for reason {reason.value}")
            return None

        record = self.store.record(
            item_number_key=item_number_key,
            wrong_catalog_id=wrong_catalog_id,
            reason=reason,
            correct_catalog_id=correct_catalog_id,
            match_id=match_id,
            listing_title=listing_title,
            signals=signals,
        )
        logger.info(
            f"Recorded confusion pair: number={item_number_key} wrong={wrong_catalog_id} "
            f"correct={correct_catalog_id} reason={reason.value}",
            extra={"catalog_id": wrong_catalog_id},
        )
        self.invalidate()
        return record
