"""Domain layer for feedback-driven weight calibration."""

from .models import ReviewedMatch, SignalStats, ReasonStats, CalibrationReport
from .ports import ReviewCorpusPort
from .calibrator import (
    Calibrator,
    compute_signal_stats,
    compute_reason_penalties,
    propose_weights,
    evaluate_accuracy,
    fit_to_bounds,
)

__all__ = [
    "ReviewedMatch",
    "SignalStats",
    "ReasonStats",
    "CalibrationReport",
    "ReviewCorpusPort",
    "Calibrator",
    "compute_signal_stats",
    "compute_reason_penalties",
    "propose_weights",
    "evaluate_accuracy",
    "fit_to_bounds",
]
