"""Pydantic schemas for review feedback"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from domain.matching.models import ReviewReason


class ReviewFeedback(BaseModel):
    """A reviewer's verdict on one stored match.

    reason is required when the match is marked incorrect.
    """
    match_id: int
    is_correct_match: bool
    reason: Optional[ReviewReason] = None
    correct_catalog_id: Optional[str] = Field(None, min_length=1)

    @model_validator(mode="after")
    def check_reason(self):
        if not self.is_correct_match and self.reason is None:
            raise ValueError("reason is required when is_correct_match is false")
        if self.is_correct_match and self.reason is not None:
            raise ValueError("reason must be empty for a correct match")
        return self


class ReasonCount(BaseModel):
    reason: str
    count: int


class AccuracyStats(BaseModel):
    """Rolling review accuracy"""
    window_days: int
    total_reviewed: int
    correct: int
    incorrect: int
    accuracy: Optional[float] = None  # percent, None when nothing reviewed
    reasons: list[ReasonCount] = Field(default_factory=list)
