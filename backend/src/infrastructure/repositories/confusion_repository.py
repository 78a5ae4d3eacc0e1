"""Confusion pair repository"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.matching.models import ConfusionRecord, ReviewReason
from domain.matching.ports import ConfusionStorePort
from models.confusion_pair import ConfusionPair


def to_confusion_record(row: ConfusionPair) -> ConfusionRecord:
    return ConfusionRecord(
        item_number_key=row.item_number_key,
        wrong_catalog_id=row.wrong_catalog_id,
        correct_catalog_id=row.correct_catalog_id,
        reason=ReviewReason(row.reason),
        created_at=row.created_at,
    )


class ConfusionRepository(ConfusionStorePort):
    """SQLAlchemy implementation of the confusion store.

    Rows are only ever inserted; load_recent() keeps the newest row per
    (item_number_key, wrong_catalog_id), insertion order breaking
    created_at ties.
    """

    def __init__(self, db: Session):
        self.db = db

    def load_recent(self) -> List[ConfusionRecord]:
        query = select(ConfusionPair).order_by(ConfusionPair.created_at, ConfusionPair.id)
        latest: Dict[tuple, ConfusionPair] = {}
        for row in self.db.execute(query).scalars().all():
            latest[(row.item_number_key, row.wrong_catalog_id)] = row
        return [to_confusion_record(row) for row in latest.values()]

    def record(
        self,
        item_number_key: str,
        wrong_catalog_id: str,
        reason: ReviewReason,
        correct_catalog_id: Optional[str] = None,
        match_id: Optional[Any] = None,
        listing_title: Optional[str] = None,
        signals: Optional[Dict[str, float]] = None,
    ) -> ConfusionRecord:
        row = ConfusionPair(
            item_number_key=item_number_key,
            wrong_catalog_id=wrong_catalog_id,
            correct_catalog_id=correct_catalog_id,
            reason=ReviewReason(reason).value,
            match_id=match_id,
            listing_title=listing_title,
            signals=signals,
        )
        self.db.add(row)
        self.db.flush()
        return to_confusion_record(row)
