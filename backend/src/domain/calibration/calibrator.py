"""Weight calibration from human-reviewed matches.

A run:
1. Requires >= 20 reviewed matches and >= 3 reviewed-incorrect ones
2. Computes per-signal separation: mean(correct) - mean(incorrect)
3. Proposes weights: 0.7 * current + 0.3 * default, plus a separation
   adjustment of at most 0.6 * MAX_DRIFT, plus reason-aware penalties
   for signals implicated by recurring error reasons
4. Bounds every weight to default +/- 0.10 and >= 0.03, renormalizes to
   exactly 1.000
5. Evaluates current and proposed weights at the 0.65 decision threshold
6. Applies (append to the weight store, then swap the registry) only if
   accuracy improves by more than 0.5 points

Accuracy is measured on the same corpus the proposal was derived from;
there is no held-out split.
"""

import logging
import math
import threading
from collections import defaultdict
from statistics import fmean
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from observability.metrics import calibration_runs_total
from domain.matching.confidence import WeightRegistry, compute_composite
from domain.matching.gates import DECISION_THRESHOLD
from domain.matching.models import DEFAULT_WEIGHTS, SIGNAL_NAMES, WeightSet
from domain.matching.ports import WeightStorePort
from .models import CalibrationReport, ReasonStats, ReviewedMatch, SignalStats
from .ports import ReviewCorpusPort

logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 20
MIN_INCORRECT = 3

# Maximum distance of any weight from its default
MAX_DRIFT = 0.10
MIN_WEIGHT = 0.03

SEPARATION_SCALE = 0.6
CURRENT_BLEND = 0.7
DEFAULT_BLEND = 0.3

# Minimum incorrect examples of a reason before its penalty applies
MIN_REASON_SAMPLE = 3
MAX_REASON_PENALTY = 0.06

MIN_IMPROVEMENT = 0.5

# Review reason -> signals that should have caught the error
REASON_SIGNALS: Dict[str, Tuple[str, ...]] = {
    "wrong_item": ("name", "number"),
    "wrong_set": ("expansion", "denominator"),
    "wrong_variant": ("variant",),
}


def _round3(value: float) -> float:
    return round(value, 3)


def compute_signal_stats(samples: Sequence[ReviewedMatch]) -> Dict[str, SignalStats]:
    """Mean signal score among correct and incorrect matches, and their difference"""
    stats = {}
    for name in SIGNAL_NAMES:
        correct = [getattr(s.signals, name) for s in samples if s.is_correct]
        incorrect = [getattr(s.signals, name) for s in samples if not s.is_correct]
        correct_mean = fmean(correct) if correct else 0.0
        incorrect_mean = fmean(incorrect) if incorrect else 0.0
        stats[name] = SignalStats(
            correct_mean=_round3(correct_mean),
            incorrect_mean=_round3(incorrect_mean),
            separation=_round3(correct_mean - incorrect_mean),
        )
    return stats


def compute_reason_penalties(
    samples: Sequence[ReviewedMatch],
) -> Tuple[Dict[str, float], Dict[str, ReasonStats]]:
    """Targeted penalties for signals that looked confident on wrong matches.

    For each match-related reason with at least MIN_REASON_SAMPLE incorrect
    examples, every implicated signal receives -min(0.06, mean * 0.06),
    where mean is that signal's average score over those examples.

    Returns:
        (penalty per signal, stats per reason)
    """
    penalties = {name: 0.0 for name in SIGNAL_NAMES}
    by_reason: Dict[str, List[ReviewedMatch]] = defaultdict(list)
    for sample in samples:
        if not sample.is_correct and sample.incorrect_reason:
            by_reason[sample.incorrect_reason].append(sample)

    reason_stats = {}
    for reason, examples in by_reason.items():
        targeted = REASON_SIGNALS.get(reason, ())
        applied = bool(targeted) and len(examples) >= MIN_REASON_SAMPLE
        if applied:
            for name in targeted:
                mean = fmean(getattr(e.signals, name) for e in examples)
                penalties[name] -= min(MAX_REASON_PENALTY, mean * MAX_REASON_PENALTY)
        reason_stats[reason] = ReasonStats(
            count=len(examples), targeted_signals=targeted, applied=applied
        )
    return penalties, reason_stats


def weight_bounds(name: str) -> Tuple[float, float]:
    default = getattr(DEFAULT_WEIGHTS, name)
    return max(MIN_WEIGHT, _round3(default - MAX_DRIFT)), _round3(default + MAX_DRIFT)


def fit_to_bounds(weights: Mapping[str, float]) -> Dict[str, float]:
    """Clamp every weight to its bounds and renormalize to sum 1.0.

    Weights that hit a bound are frozen and the remaining mass is spread
    proportionally over the free ones, until the sum is 1.0. Values are
    then rounded to 3 dp; the rounding remainder goes to the largest
    weight that stays within its bounds.
    """
    bounds = {name: weight_bounds(name) for name in SIGNAL_NAMES}
    fitted = {
        name: min(bounds[name][1], max(bounds[name][0], weights[name]))
        for name in SIGNAL_NAMES
    }

    for _ in range(2 * len(SIGNAL_NAMES)):
        residual = 1.0 - sum(fitted.values())
        if abs(residual) < 1e-12:
            break
        if residual > 0:
            free = [n for n in SIGNAL_NAMES if fitted[n] < bounds[n][1]]
        else:
            free = [n for n in SIGNAL_NAMES if fitted[n] > bounds[n][0]]
        free_total = sum(fitted[n] for n in free)
        if not free or free_total <= 0:
            break
        factor = (free_total + residual) / free_total
        for n in free:
            fitted[n] = min(bounds[n][1], max(bounds[n][0], fitted[n] * factor))

    rounded = {name: _round3(value) for name, value in fitted.items()}
    remainder = _round3(1.0 - sum(rounded.values()))
    if remainder != 0:
        for name in sorted(SIGNAL_NAMES, key=lambda n: rounded[n], reverse=True):
            low, high = bounds[name]
            candidate = _round3(rounded[name] + remainder)
            if low <= candidate <= high:
                rounded[name] = candidate
                break
    return rounded


def propose_weights(
    signal_stats: Mapping[str, SignalStats],
    current: WeightSet,
    reason_penalties: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """Proposed weights from separation, mean reversion and reason penalties.

    Args:
        signal_stats: Per-signal separation
        current: Active weight set
        reason_penalties: Non-positive adjustment per signal

    Returns:
        Weights within bounds, summing to exactly 1.000
    """
    reason_penalties = reason_penalties or {}
    separations = [signal_stats[name].separation for name in SIGNAL_NAMES]
    max_separation = max([abs(s) for s in separations] + [0.01])

    raw = {}
    for name in SIGNAL_NAMES:
        blended = CURRENT_BLEND * getattr(current, name) + DEFAULT_BLEND * getattr(DEFAULT_WEIGHTS, name)
        adjustment = signal_stats[name].separation / max_separation * MAX_DRIFT * SEPARATION_SCALE
        raw[name] = blended + adjustment + reason_penalties.get(name, 0.0)
    return fit_to_bounds(raw)


def evaluate_accuracy(
    samples: Sequence[ReviewedMatch],
    weights: WeightSet,
    threshold: float = DECISION_THRESHOLD,
) -> float:
    """Percentage of reviewed matches the weights classify correctly.

    A correct match counts when its composite reaches the threshold; an
    incorrect one counts when it stays below.
    """
    if not samples:
        return 0.0
    hits = 0
    for sample in samples:
        would_create = compute_composite(sample.signals, weights) >= threshold
        if would_create == sample.is_correct:
            hits += 1
    return hits / len(samples) * 100


class Calibrator:
    """Single-flight calibration job.

    The only externally visible side effects are the append to the weight
    store and the registry swap, both at the very end of a run that
    applies. A run that fails or is skipped leaves the active weights
    untouched.
    """

    def __init__(
        self,
        corpus: ReviewCorpusPort,
        weight_store: WeightStorePort,
        registry: WeightRegistry,
    ):
        self.corpus = corpus
        self.weight_store = weight_store
        self.registry = registry
        self._run_lock = threading.Lock()

    def run(self) -> CalibrationReport:
        """Run one calibration pass.

        Returns:
            CalibrationReport; insufficiency and concurrent runs are reported,
            not raised. Store I/O errors propagate.
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Calibration already running, skipping")
            return CalibrationReport(
                applied=False, reason="Calibration already in progress", sample_size=0
            )
        try:
            report = self._run()
        finally:
            self._run_lock.release()

        calibration_runs_total.labels(applied=str(report.applied).lower()).inc()
        return report

    def _run(self) -> CalibrationReport:
        samples = self.corpus.fetch_reviewed()
        # Every report uses the latest stored set as its baseline
        current = self.weight_store.get_active() or DEFAULT_WEIGHTS
        active = current.as_dict()

        if len(samples) < MIN_SAMPLE_SIZE:
            reason = f"Insufficient data: {len(samples)} reviewed matches (need {MIN_SAMPLE_SIZE})"
            logger.info(reason)
            return CalibrationReport(
                applied=False, reason=reason, sample_size=len(samples),
                old_weights=active, new_weights=active,
            )

        incorrect_count = sum(1 for s in samples if not s.is_correct)
        if incorrect_count < MIN_INCORRECT:
            reason = (
                f"Insufficient negative examples: {incorrect_count} incorrect matches "
                f"(need {MIN_INCORRECT})"
            )
            logger.info(reason)
            return CalibrationReport(
                applied=False, reason=reason, sample_size=len(samples),
                old_weights=active, new_weights=active,
            )

        signal_stats = compute_signal_stats(samples)
        penalties, reason_stats = compute_reason_penalties(samples)
        proposed = WeightSet.from_dict(
            propose_weights(signal_stats, current, penalties),
            version=current.version + 1,
        )

        accuracy_before = evaluate_accuracy(samples, current)
        accuracy_after = evaluate_accuracy(samples, proposed)
        improvement = accuracy_after - accuracy_before

        logger.info(
            f"Calibration analysis: {len(samples)} samples, {incorrect_count} incorrect, "
            f"accuracy {accuracy_before:.1f}% -> {accuracy_after:.1f}%",
            extra={"weights_version": current.version},
        )

        report_fields = dict(
            sample_size=len(samples),
            accuracy_before=round(accuracy_before, 2),
            accuracy_after=round(accuracy_after, 2),
            old_weights=current.as_dict(),
            new_weights=proposed.as_dict(),
            per_signal_stats=signal_stats,
            reason_stats=reason_stats,
        )

        if improvement <= MIN_IMPROVEMENT or math.isclose(improvement, MIN_IMPROVEMENT):
            if improvement <= 0:
                reason = (
                    f"New weights would not improve accuracy "
                    f"({accuracy_before:.1f}% -> {accuracy_after:.1f}%)"
                )
            else:
                reason = f"Improvement too small: +{improvement:.1f} points (need >{MIN_IMPROVEMENT})"
            logger.info(reason)
            return CalibrationReport(applied=False, reason=reason, **report_fields)

        metadata = {
            "sample_size": len(samples),
            "correct_count": len(samples) - incorrect_count,
            "incorrect_count": incorrect_count,
            "accuracy_before": accuracy_before,
            "accuracy_after": accuracy_after,
            "improvement": improvement,
            "baseline_weights": current.as_dict(),
            "signal_stats": {k: v.as_dict() for k, v in signal_stats.items()},
            "reason_penalties": penalties,
            "reason_stats": {k: v.as_dict() for k, v in reason_stats.items()},
        }
        stored = self.weight_store.append(proposed, metadata)
        self.registry.swap(stored)

        reason = (
            f"Improved accuracy by +{improvement:.1f} points "
            f"({accuracy_before:.1f}% -> {accuracy_after:.1f}%)"
        )
        logger.info(f"Calibration applied: {reason}", extra={"weights_version": stored.version})
        report_fields["new_weights"] = stored.as_dict()
        return CalibrationReport(
            applied=True, reason=reason, new_version=stored.version, **report_fields
        )
