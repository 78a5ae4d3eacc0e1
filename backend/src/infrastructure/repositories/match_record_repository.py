"""Match record repository.

Persists accepted matches and serves the reviewed ones back as the
calibration corpus.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.calibration.models import ReviewedMatch
from domain.calibration.ports import ReviewCorpusPort
from domain.matching.models import SIGNAL_NAMES, ConfidenceSignals, MatchResult
from domain.matching.ports import MatchRecordStorePort
from models.match_record import MatchRecord

logger = logging.getLogger(__name__)


class MatchRecordRepository(MatchRecordStorePort, ReviewCorpusPort):
    """SQLAlchemy store for match records and their reviews"""

    def __init__(self, db: Session):
        self.db = db

    def save(self, result: MatchResult, listing_title: str, condition: Optional[str] = None) -> int:
        record = MatchRecord(
            listing_id=result.listing_id,
            listing_title=listing_title,
            catalog_id=result.catalog_id,
            variant_id=result.variant_id,
            item_number_key=result.item_number_key,
            condition=condition,
            composite=result.confidence.composite,
            junk_penalty=result.confidence.junk_penalty,
            signals=result.confidence.signals.as_dict(),
            retrieval_strategy=result.retrieval_strategy.value,
            variant_resolution_method=result.variant_resolution_method.value,
            weights_version=result.weights_version,
        )
        self.db.add(record)
        self.db.flush()
        return record.id

    def get(self, match_id: int) -> Optional[MatchRecord]:
        return self.db.get(MatchRecord, match_id)

    def mark_reviewed(
        self,
        record: MatchRecord,
        is_correct: bool,
        reason: Optional[str] = None,
        correct_catalog_id: Optional[str] = None,
    ) -> MatchRecord:
        """Store a review outcome on a match record.

        Args:
            record: Match record to update
            is_correct: Reviewer verdict
            reason: Incorrect reason, None for correct matches
            correct_catalog_id: Reviewer-supplied correct catalog id

        Returns:
            Updated MatchRecord
        """
        record.is_correct_match = is_correct
        record.incorrect_reason = None if is_correct else reason
        record.correct_catalog_id = None if is_correct else correct_catalog_id
        record.reviewed_at = datetime.now(timezone.utc)
        self.db.flush()
        return record

    def fetch_reviewed(self) -> List[ReviewedMatch]:
        query = (
            select(MatchRecord)
            .where(MatchRecord.is_correct_match.isnot(None))
            .order_by(MatchRecord.reviewed_at.desc(), MatchRecord.id.desc())
        )
        reviewed = []
        for record in self.db.execute(query).scalars().all():
            signals = record.signals or {}
            if not all(isinstance(signals.get(name), (int, float)) for name in SIGNAL_NAMES):
                logger.warning(f"Match record {record.id} has incomplete signals, skipping")
                continue
            reviewed.append(ReviewedMatch(
                is_correct=record.is_correct_match,
                signals=ConfidenceSignals(**{name: float(signals[name]) for name in SIGNAL_NAMES}),
                incorrect_reason=record.incorrect_reason,
            ))
        return reviewed

    def reviewed_since(self, since: datetime) -> List[MatchRecord]:
        """Reviewed records with reviewed_at at or after `since`"""
        query = (
            select(MatchRecord)
            .where(MatchRecord.is_correct_match.isnot(None), MatchRecord.reviewed_at >= since)
            .order_by(MatchRecord.reviewed_at)
        )
        return self.db.execute(query).scalars().all()
