"""Confidence gates.

| Composite | Tier   |
|-----------|--------|
| >= 0.85   | high   |
| 0.65-0.84 | medium |
| 0.45-0.64 | low    |
| < 0.45    | reject |

Only the absolute gate is enforced by the matcher. DECISION_THRESHOLD is
the line the calibrator uses to decide whether a historical match would
have produced a deal.
"""

from .models import ConfidenceTier

ABSOLUTE_GATE = 0.45
DECISION_THRESHOLD = 0.65
HIGH_CONFIDENCE = 0.85


def passes_gate(composite: float) -> bool:
    """True unless the composite is below the absolute minimum"""
    return composite >= ABSOLUTE_GATE


def would_create_deal(composite: float, threshold: float = DECISION_THRESHOLD) -> bool:
    return composite >= threshold


def classify_confidence(composite: float) -> ConfidenceTier:
    if composite >= HIGH_CONFIDENCE:
        return ConfidenceTier.HIGH
    if composite >= DECISION_THRESHOLD:
        return ConfidenceTier.MEDIUM
    if composite >= ABSOLUTE_GATE:
        return ConfidenceTier.LOW
    return ConfidenceTier.REJECT
