"""Review feedback service.

Applies a reviewer's verdict to a stored match record and feeds
match-related mistakes into confusion memory.
"""

import logging

from domain.matching.confusion_memory import ConfusionMemory
from domain.matching.models import MATCH_ERROR_REASONS
from infrastructure.repositories.match_record_repository import MatchRecordRepository
from models.match_record import MatchRecord

from .schemas import ReviewFeedback

logger = logging.getLogger(__name__)


class MatchRecordNotFoundError(Exception):
    """Raised when a review references an unknown match record"""
    pass


class ReviewService:
    """Service for applying review outcomes.

    Reviews do not touch the active weights; calibration reads them later
    through the review corpus.
    """

    def __init__(self, records: MatchRecordRepository, confusion: ConfusionMemory):
        self.records = records
        self.confusion = confusion

    def apply_review(self, feedback: ReviewFeedback) -> MatchRecord:
        """Mark a match reviewed.

        Args:
            feedback: Validated review feedback

        Returns:
            Updated MatchRecord

        Raises:
            MatchRecordNotFoundError: If match_id does not exist
        """
        record = self.records.get(feedback.match_id)
        if record is None:
            raise MatchRecordNotFoundError(f"Match record {feedback.match_id} not found")

        reason = feedback.reason.value if feedback.reason else None
        self.records.mark_reviewed(
            record,
            is_correct=feedback.is_correct_match,
            reason=reason,
            correct_catalog_id=feedback.correct_catalog_id,
        )
        logger.info(
            f"Review applied to match {record.id}: correct={feedback.is_correct_match} reason={reason}",
            extra={"listing_id": record.listing_id, "catalog_id": record.catalog_id},
        )

        if (
            not feedback.is_correct_match
            and feedback.reason in MATCH_ERROR_REASONS
            and record.item_number_key
        ):
            self.confusion.record_confusion(
                item_number_key=record.item_number_key,
                wrong_catalog_id=record.catalog_id,
                reason=feedback.reason,
                correct_catalog_id=feedback.correct_catalog_id,
                match_id=record.id,
                listing_title=record.listing_title,
                signals=record.signals,
            )

        return record
