"""Learned junk scoring.

Soft confidence penalties learned from reviewer junk reports:

1. Learned keywords: novel tokens from reported titles (words that are not
   catalog names) matched against new listings.
2. Seller reputation: sellers with >= 3 reports get a penalty that grows
   with their report count, capped so no seller is ever blocked outright.

Scoring is a pure function over a JunkSnapshot. JunkSignalCache owns the
periodic pull of that snapshot from the report store.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Mapping, Optional
from types import MappingProxyType

from .ports import JunkReportStorePort

logger = logging.getLogger(__name__)

# Penalty when any learned keyword appears in the title
LEARNED_KEYWORD_PENALTY = 0.15

# Penalty per seller report at or above the threshold
SELLER_PENALTY_PER_REPORT = 0.05

# Reports needed before a seller is penalized
SELLER_PENALTY_THRESHOLD = 3

# Seller penalty cap
SELLER_PENALTY_CAP = 0.20

# Generic listing vocabulary that must never become a learned junk token
STOP_WORDS = frozenset({
    "pokemon", "pokémon", "card", "cards", "tcg", "trading", "game",
    "mint", "near", "lightly", "moderately", "heavily", "played", "damaged",
    "nm", "lp", "mp", "hp", "dm",
    "psa", "cgc", "bgs", "ace", "graded",
    "holo", "holofoil", "holographic", "reverse", "full", "art", "rare",
    "ultra", "secret", "amazing", "radiant", "illustration", "special",
    "ex", "gx", "vmax", "vstar", "v", "tag", "team", "mega", "break",
    "trainer", "gallery", "promo",
    "free", "postage", "shipping", "uk", "p&p", "post", "delivery",
    "new", "sealed", "pack", "fresh",
})

NUMERIC_TOKEN = re.compile(r"^\d+([/.-]\d+)?$")


@dataclass(frozen=True)
class JunkSnapshot:
    """Point-in-time copy of the learned junk tables"""
    learned_tokens: FrozenSet[str] = frozenset()
    seller_report_counts: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )


@dataclass(frozen=True)
class JunkScore:
    penalty: float = 0.0
    matched_keywords: tuple = ()
    seller_report_count: int = 0


EMPTY_SNAPSHOT = JunkSnapshot()


def seller_penalty(report_count: int) -> float:
    """Penalty for a seller with `report_count` junk reports."""
    if report_count < SELLER_PENALTY_THRESHOLD:
        return 0.0
    return min(
        SELLER_PENALTY_CAP,
        (report_count - SELLER_PENALTY_THRESHOLD + 1) * SELLER_PENALTY_PER_REPORT,
    )


def score_junk_signals(
    cleaned_title: str,
    seller_name: Optional[str],
    snapshot: JunkSnapshot,
) -> JunkScore:
    """Score a listing against the learned junk tables.

    Args:
        cleaned_title: Normalized listing title
        seller_name: Marketplace seller, if known
        snapshot: Learned tokens and seller report counts

    Returns:
        JunkScore whose penalty is subtracted from the composite confidence
    """
    penalty = 0.0
    matched: List[str] = []

    if snapshot.learned_tokens:
        for word in cleaned_title.lower().split():
            if word in snapshot.learned_tokens and word not in matched:
                matched.append(word)
        if matched:
            penalty += LEARNED_KEYWORD_PENALTY

    report_count = 0
    if seller_name and seller_name in snapshot.seller_report_counts:
        report_count = snapshot.seller_report_counts[seller_name]
        penalty += seller_penalty(report_count)

    if penalty > 0:
        logger.debug(
            f"Junk penalty {penalty:.2f} (keywords={matched}, seller={seller_name}, reports={report_count})"
        )

    return JunkScore(
        penalty=round(penalty, 3),
        matched_keywords=tuple(matched),
        seller_report_count=report_count,
    )


def candidate_tokens(cleaned_title: str) -> List[str]:
    """Title tokens long enough and generic-free enough to be learned."""
    words = [w for w in cleaned_title.lower().split() if len(w) >= 3]
    return [w for w in words if w not in STOP_WORDS]


def extract_novel_tokens(cleaned_title: str, catalog_words: FrozenSet[str]) -> List[str]:
    """Tokens of a junk title that are neither catalog words nor numbers.

    These are the words safe to match against future listings: they say
    something about the junk ("lot", "sticker", "keyring") rather than
    about which card it was.

    Args:
        cleaned_title: Normalized title of the reported listing
        catalog_words: Lowercase words of matching catalog card/collection names

    Returns:
        Novel tokens in title order, without duplicates
    """
    novel: List[str] = []
    for word in candidate_tokens(cleaned_title):
        if word in catalog_words or NUMERIC_TOKEN.match(word):
            continue
        if word not in novel:
            novel.append(word)
    return novel


class JunkSignalCache:
    """Holds the current JunkSnapshot and refreshes it from the store on a TTL.

    The snapshot is replaced wholesale; readers always see one complete
    version. Store failures propagate to the caller.
    """

    def __init__(
        self,
        store: JunkReportStorePort,
        ttl_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._snapshot: JunkSnapshot = EMPTY_SNAPSHOT
        self._loaded_at: Optional[float] = None
        self._lock = threading.Lock()

    def invalidate(self) -> None:
        """Force a refresh on the next snapshot() call."""
        self._loaded_at = None

    def _reload(self) -> JunkSnapshot:
        tokens = self._store.load_learned_tokens()
        sellers = self._store.load_seller_report_counts(SELLER_PENALTY_THRESHOLD)
        snapshot = JunkSnapshot(
            learned_tokens=frozenset(t.lower() for t in tokens),
            seller_report_counts=MappingProxyType(dict(sellers)),
        )
        self._snapshot = snapshot
        self._loaded_at = self._clock()
        logger.info(
            f"Junk signal cache refreshed: {len(snapshot.learned_tokens)} keywords, "
            f"{len(snapshot.seller_report_counts)} flagged sellers"
        )
        return snapshot

    def refresh(self) -> JunkSnapshot:
        """Pull a fresh snapshot from the store and swap it in."""
        with self._lock:
            return self._reload()

    def _is_stale(self) -> bool:
        loaded_at = self._loaded_at
        return loaded_at is None or self._clock() - loaded_at > self._ttl

    def snapshot(self) -> JunkSnapshot:
        """Current snapshot, refreshed first if the TTL has expired.

        Concurrent callers that find the snapshot stale wait for a single
        reload instead of each querying the store.
        """
        if self._is_stale():
            with self._lock:
                if self._is_stale():
                    return self._reload()
        return self._snapshot


class JunkReportService:
    """Records reviewer junk reports and feeds them back into the cache."""

    def __init__(self, store: JunkReportStorePort, cache: Optional[JunkSignalCache] = None):
        self.store = store
        self.cache = cache

    def record_report(
        self,
        listing_id: str,
        cleaned_title: str,
        seller_name: Optional[str],
        catalog_id: Optional[str] = None,
    ) -> List[str]:
        """Store a junk report with the novel tokens learned from its title.

        Args:
            listing_id: Reported listing
            cleaned_title: Normalized title of the listing
            seller_name: Seller of the listing, if known
            catalog_id: Catalog item the listing had been matched to, if any

        Returns:
            The learned tokens
        """
        candidates = candidate_tokens(cleaned_title)
        catalog_words = frozenset(
            w.lower() for w in self.store.catalog_words(candidates, catalog_id)
        ) if candidates else frozenset()
        learned = extract_novel_tokens(cleaned_title, catalog_words)

        self.store.save_report(listing_id, cleaned_title, seller_name, learned)
        logger.info(
            f"Junk report recorded for listing {listing_id}: {len(learned)} learned tokens",
            extra={"listing_id": listing_id},
        )

        if self.cache is not None:
            self.cache.invalidate()
        return learned
