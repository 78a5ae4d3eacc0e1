"""Feedback module for the review loop

This module handles:
- Applying reviewer verdicts to stored matches
- Feeding match mistakes into confusion memory
- Rolling accuracy analytics
"""

from .schemas import ReviewFeedback, AccuracyStats, ReasonCount
from .services import ReviewService, MatchRecordNotFoundError
from .analytics import AccuracyAnalytics

__all__ = [
    "ReviewFeedback",
    "AccuracyStats",
    "ReasonCount",
    "ReviewService",
    "MatchRecordNotFoundError",
    "AccuracyAnalytics",
]
