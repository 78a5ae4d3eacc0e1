"""Confidence scoring.

Composite confidence is a weighted geometric mean of the six signals:

    composite = exp(sum(w_i * ln(clamp(s_i, 0.01, 1.0))) / sum(w_i))

rounded to 3 decimal places. A single near-zero signal drags the
composite down; strong signals cannot compensate for a wrong field.

Weights come from the WeightRegistry, which holds exactly one immutable
WeightSet and swaps it atomically when calibration applies a new one.
"""

import logging
import math
import threading
import time
from typing import Callable, Optional

from observability.metrics import active_weights_version
from domain.extraction.models import ItemNumber
from .models import DEFAULT_WEIGHTS, SIGNAL_NAMES, ConfidenceSignals, WeightSet
from .ports import WeightStorePort

logger = logging.getLogger(__name__)

SIGNAL_FLOOR = 0.01

DENOMINATOR_MATCH = 1.0
DENOMINATOR_MISMATCH = 0.20
DENOMINATOR_UNKNOWN = 0.50


def compute_composite(signals: ConfidenceSignals, weights: WeightSet) -> float:
    """Weighted geometric mean of the signals, rounded to 3 dp.

    Args:
        signals: The six signals
        weights: Weight set to apply

    Returns:
        Composite confidence in [0.01, 1.0]
    """
    weighted_log_sum = 0.0
    total_weight = 0.0
    for name in SIGNAL_NAMES:
        weight = getattr(weights, name)
        score = min(1.0, max(SIGNAL_FLOOR, getattr(signals, name)))
        weighted_log_sum += weight * math.log(score)
        total_weight += weight

    if total_weight <= 0:
        return SIGNAL_FLOOR
    return round(math.exp(weighted_log_sum / total_weight), 3)


def number_signal(item_number: Optional[ItemNumber]) -> float:
    """1.0 when any item number was extracted, else 0.0"""
    return 1.0 if item_number is not None else 0.0


def denominator_signal(extracted_denominator: Optional[int], printed_total: Optional[int]) -> float:
    """1.0 exact match, 0.20 mismatch, 0.50 when nothing was extracted"""
    if extracted_denominator is None:
        return DENOMINATOR_UNKNOWN
    if printed_total is not None and extracted_denominator == printed_total:
        return DENOMINATOR_MATCH
    return DENOMINATOR_MISMATCH


def apply_junk_penalty(composite: float, penalty: float) -> float:
    """Subtract the learned junk penalty, floored at 0"""
    if penalty <= 0:
        return composite
    return round(max(0.0, composite - penalty), 3)


class WeightRegistry:
    """Holds the active WeightSet behind a single reference.

    Readers call current() once per scoring call and use that value
    throughout; swap() replaces the reference wholesale so a reader sees
    either the old or the new set, never a mix.

    With a store, current() reloads the latest stored set once the TTL
    has expired, so a set appended by calibration in another process is
    picked up on next use. Only one reader reloads per expiry; store
    failures propagate and the previous set stays active.
    """

    def __init__(
        self,
        initial: WeightSet = DEFAULT_WEIGHTS,
        store: Optional[WeightStorePort] = None,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._active = initial
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._loaded_at: Optional[float] = None
        self._swap_lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        active_weights_version.set(initial.version)

    def _is_stale(self) -> bool:
        loaded_at = self._loaded_at
        return loaded_at is None or self._clock() - loaded_at > self._ttl

    def current(self) -> WeightSet:
        if self._store is not None and self._is_stale():
            with self._refresh_lock:
                if self._is_stale():
                    self._reload(self._store)
        return self._active

    def swap(self, weights: WeightSet) -> WeightSet:
        """Make `weights` the active set; returns the previous one."""
        with self._swap_lock:
            previous = self._active
            self._active = weights
        active_weights_version.set(weights.version)
        logger.info(
            f"Active weights swapped: v{previous.version} -> v{weights.version}",
            extra={"weights_version": weights.version},
        )
        return previous

    def _reload(self, store: WeightStorePort) -> WeightSet:
        stored = store.get_active()
        if stored is None:
            stored = DEFAULT_WEIGHTS
        if stored.version != self._active.version:
            self.swap(stored)
        self._loaded_at = self._clock()
        return self._active

    def load(self, store: WeightStorePort) -> WeightSet:
        """Load the latest stored set (defaults when the store is empty)."""
        with self._refresh_lock:
            stored = self._reload(store)
        if stored is DEFAULT_WEIGHTS:
            logger.info("No stored weights, using defaults")
        return stored
