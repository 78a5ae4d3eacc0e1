"""Observability module for the listing matcher.

Provides structured logging, listing correlation and metrics.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    listings_processed_total,
    listing_rejections_total,
    unmapped_condition_descriptors_total,
    retrieval_strategy_total,
    match_confidence_histogram,
    match_duration_seconds,
    calibration_runs_total,
    active_weights_version,
)
from .correlation import (
    correlation_id_var,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
    generate_correlation_id,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "listings_processed_total",
    "listing_rejections_total",
    "unmapped_condition_descriptors_total",
    "retrieval_strategy_total",
    "match_confidence_histogram",
    "match_duration_seconds",
    "calibration_runs_total",
    "active_weights_version",
    # Correlation
    "correlation_id_var",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
    "generate_correlation_id",
]
