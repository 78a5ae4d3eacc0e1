"""Calibration domain models"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from domain.matching.models import ConfidenceSignals


@dataclass(frozen=True)
class ReviewedMatch:
    """A human-reviewed match with the signals it was scored with"""
    is_correct: bool
    signals: ConfidenceSignals
    incorrect_reason: Optional[str] = None


@dataclass(frozen=True)
class SignalStats:
    correct_mean: float
    incorrect_mean: float
    separation: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "correct_mean": self.correct_mean,
            "incorrect_mean": self.incorrect_mean,
            "separation": self.separation,
        }


@dataclass(frozen=True)
class ReasonStats:
    count: int
    targeted_signals: Tuple[str, ...] = ()
    applied: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "targeted_signals": list(self.targeted_signals),
            "applied": self.applied,
        }


@dataclass(frozen=True)
class CalibrationReport:
    """Outcome of one calibration run, applied or not"""
    applied: bool
    reason: str
    sample_size: int
    accuracy_before: float = 0.0
    accuracy_after: float = 0.0
    old_weights: Dict[str, float] = field(default_factory=dict)
    new_weights: Dict[str, float] = field(default_factory=dict)
    per_signal_stats: Dict[str, SignalStats] = field(default_factory=dict)
    reason_stats: Dict[str, ReasonStats] = field(default_factory=dict)
    new_version: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "applied": self.applied,
            "reason": self.reason,
            "sample_size": self.sample_size,
            "accuracy_before": self.accuracy_before,
            "accuracy_after": self.accuracy_after,
            "old_weights": dict(self.old_weights),
            "new_weights": dict(self.new_weights),
            "per_signal_stats": {k: v.as_dict() for k, v in self.per_signal_stats.items()},
            "reason_stats": {k: v.as_dict() for k, v in self.reason_stats.items()},
            "new_version": self.new_version,
        }
