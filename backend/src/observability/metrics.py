"""Prometheus metrics for the listing matcher.

Defines operational metrics for monitoring match quality and calibration.
"""

from prometheus_client import Counter, Histogram, Gauge

# Extraction metrics
listings_processed_total = Counter(
    "cardmatch_listings_processed_total",
    "Total listings run through extraction and matching",
    ["outcome"]  # outcome: matched|rejected
)

listing_rejections_total = Counter(
    "cardmatch_listing_rejections_total",
    "Listings rejected, by reason",
    ["reason"]  # reason: bulk_lot|fake|non_card|non_english|no_candidates|name_gate|...
)

unmapped_condition_descriptors_total = Counter(
    "cardmatch_unmapped_condition_descriptors_total",
    "Structured condition descriptor codes that could not be mapped",
    ["descriptor"]
)

# Matching metrics
retrieval_strategy_total = Counter(
    "cardmatch_retrieval_strategy_total",
    "Candidate retrieval strategy that produced the candidate set",
    ["strategy"]  # strategy: number_denominator|number_prefix|number_only|name_fuzzy|none
)

match_confidence_histogram = Histogram(
    "cardmatch_match_confidence",
    "Composite confidence distribution of accepted matches",
    buckets=[0.45, 0.5, 0.55, 0.6, 0.65, 0.7, 0.75, 0.8, 0.85, 0.9, 0.95, 1.0]
)

match_duration_seconds = Histogram(
    "cardmatch_match_duration_seconds",
    "Time spent matching a single listing in seconds",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Calibration metrics
calibration_runs_total = Counter(
    "cardmatch_calibration_runs_total",
    "Calibration runs, by whether the proposal was applied",
    ["applied"]  # applied: true|false
)

active_weights_version = Gauge(
    "cardmatch_active_weights_version",
    "Version of the weight set currently used for scoring"
)
