"""Confusion pair SQLAlchemy model.

Append-only log of confirmed wrong matches. The latest row per
(item_number_key, wrong_catalog_id) is authoritative.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Text, Integer, Index, DateTime, func

from .base import Base, PortableJSONB


class ConfusionPair(Base):
    __tablename__ = "confusion_pair"
    __table_args__ = (
        Index("ix_confusion_pair_number_wrong", "item_number_key", "wrong_catalog_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_number_key = Column(Text, nullable=False)
    wrong_catalog_id = Column(Text, nullable=False)
    correct_catalog_id = Column(Text, nullable=True)
    reason = Column(Text, nullable=False)  # wrong_item, wrong_set, wrong_variant
    match_id = Column(Integer, nullable=True)
    listing_title = Column(Text, nullable=True)
    signals = Column(PortableJSONB, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
