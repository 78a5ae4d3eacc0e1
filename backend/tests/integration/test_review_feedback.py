"""Integration tests for review feedback and accuracy analytics"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.matching.confusion_memory import ConfusionMemory
from domain.matching.models import (
    ConfidenceSignals,
    MatchConfidence,
    MatchResult,
    RetrievalStrategy,
    ReviewReason,
    VariantResolutionMethod,
)
from feedback.analytics import AccuracyAnalytics
from feedback.schemas import ReviewFeedback
from feedback.services import MatchRecordNotFoundError, ReviewService
from infrastructure.repositories import ConfusionRepository, MatchRecordRepository
from models.confusion_pair import ConfusionPair


def save_match(records, listing_id="listing-1", number_key="6"):
    signals = ConfidenceSignals(
        name=1.0, number=1.0, denominator=1.0, expansion=1.0, variant=0.85, normalization=1.0
    )
    result = MatchResult(
        listing_id=listing_id,
        catalog_id="sv3-6",
        variant_id="1",
        item_name="Charizard ex",
        variant_name="holofoil",
        item_number_key=number_key,
        confidence=MatchConfidence(signals=signals, composite=0.984),
        retrieval_strategy=RetrievalStrategy.NUMBER_DENOMINATOR,
        variant_resolution_method=VariantResolutionMethod.KEYWORD_MATCH,
        weights_version=0,
    )
    return records.save(result, "Charizard ex 006/197 Holo")


@pytest.fixture
def records(db_session):
    return MatchRecordRepository(db_session)


@pytest.fixture
def memory(db_session, clock):
    return ConfusionMemory(ConfusionRepository(db_session), clock=clock)


class TestReviewFeedbackSchema:

    def test_incorrect_requires_reason(self):
        with pytest.raises(ValidationError):
            ReviewFeedback(match_id=1, is_correct_match=False)

    def test_correct_forbids_reason(self):
        with pytest.raises(ValidationError):
            ReviewFeedback(match_id=1, is_correct_match=True, reason="wrong_set")

    def test_unknown_reason_rejected(self):
        with pytest.raises(ValidationError):
            ReviewFeedback(match_id=1, is_correct_match=False, reason="wrong_language")

    def test_valid_feedback(self):
        feedback = ReviewFeedback(match_id=1, is_correct_match=False, reason="wrong_set")
        assert feedback.reason == ReviewReason.WRONG_SET


class TestReviewService:

    def test_wrong_match_feeds_confusion_memory(self, db_session, records, memory):
        match_id = save_match(records)
        service = ReviewService(records, memory)

        record = service.apply_review(ReviewFeedback(
            match_id=match_id,
            is_correct_match=False,
            reason="wrong_set",
            correct_catalog_id="sv3pt5-6",
        ))

        assert record.is_correct_match is False
        assert record.incorrect_reason == "wrong_set"
        assert record.reviewed_at is not None
        stored = memory.lookup("6")["sv3-6"]
        assert stored.correct_catalog_id == "sv3pt5-6"
        pair = db_session.query(ConfusionPair).one()
        assert pair.match_id == match_id
        assert pair.signals["variant"] == 0.85

    def test_condition_errors_not_recorded(self, db_session, records, memory):
        match_id = save_match(records)
        ReviewService(records, memory).apply_review(ReviewFeedback(
            match_id=match_id, is_correct_match=False, reason="wrong_condition",
        ))
        assert db_session.query(ConfusionPair).count() == 0

    def test_correct_match(self, db_session, records, memory):
        match_id = save_match(records)
        record = ReviewService(records, memory).apply_review(
            ReviewFeedback(match_id=match_id, is_correct_match=True)
        )
        assert record.is_correct_match is True
        assert db_session.query(ConfusionPair).count() == 0

    def test_unknown_match(self, records, memory):
        with pytest.raises(MatchRecordNotFoundError):
            ReviewService(records, memory).apply_review(
                ReviewFeedback(match_id=999, is_correct_match=True)
            )


class TestAccuracyAnalytics:

    def review(self, records, count, is_correct, reason=None):
        for i in range(count):
            record = records.get(save_match(records, listing_id=f"{is_correct}-{reason}-{i}"))
            records.mark_reviewed(record, is_correct=is_correct, reason=reason)

    def test_stats(self, records):
        self.review(records, 7, True)
        self.review(records, 2, False, "wrong_set")
        self.review(records, 1, False, "wrong_price")
        save_match(records, listing_id="unreviewed")

        stats = AccuracyAnalytics(records).get_stats()

        assert stats.total_reviewed == 10
        assert stats.correct == 7
        assert stats.accuracy == 70.0
        assert [(r.reason, r.count) for r in stats.reasons] == [("wrong_set", 2), ("wrong_price", 1)]

    def test_below_threshold(self, records):
        self.review(records, 7, True)
        self.review(records, 3, False, "wrong_item")
        assert AccuracyAnalytics(records).is_below_threshold()

    def test_too_few_reviews_never_alert(self, records):
        self.review(records, 1, True)
        self.review(records, 3, False, "wrong_item")
        assert not AccuracyAnalytics(records).is_below_threshold()

    def test_window(self, records):
        self.review(records, 2, True)
        future = datetime.now(timezone.utc) + timedelta(days=30)

        stats = AccuracyAnalytics(records, clock=lambda: future).get_stats()

        assert stats.total_reviewed == 0
        assert stats.accuracy is None
        assert stats.reasons == []
