"""Match record SQLAlchemy model.

One row per accepted match, with the signals it was scored with. Human
review fields are filled later by the review collaborator and form the
calibration corpus.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Text, Integer, Float, Boolean, Index, DateTime, func

from .base import Base, PortableJSONB


def _utcnow():
    return datetime.now(timezone.utc)


class MatchRecord(Base):
    """Persisted MatchResult plus its review outcome.

    Review values:
    - is_correct_match: NULL until reviewed
    - incorrect_reason: wrong_item, wrong_set, wrong_variant, wrong_condition, wrong_price
    - correct_catalog_id: reviewer-supplied correction, optional
    """
    __tablename__ = "match_record"
    __table_args__ = (
        Index("ix_match_record_listing", "listing_id"),
        Index("ix_match_record_reviewed_at", "reviewed_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    listing_id = Column(Text, nullable=False)
    listing_title = Column(Text, nullable=False)
    catalog_id = Column(Text, nullable=False)
    variant_id = Column(Text, nullable=False)
    item_number_key = Column(Text, nullable=True)
    condition = Column(Text, nullable=True)

    # Scoring
    composite = Column(Float, nullable=False)
    junk_penalty = Column(Float, nullable=False, default=0.0)
    signals = Column(PortableJSONB, nullable=False)  # {name, number, denominator, expansion, variant, normalization}
    retrieval_strategy = Column(Text, nullable=False)
    variant_resolution_method = Column(Text, nullable=False)
    weights_version = Column(Integer, nullable=False, default=0)

    # Review
    is_correct_match = Column(Boolean, nullable=True)
    incorrect_reason = Column(Text, nullable=True)
    correct_catalog_id = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    def to_dict(self):
        """Convert match record to dictionary representation"""
        return {
            "id": self.id,
            "listing_id": self.listing_id,
            "listing_title": self.listing_title,
            "catalog_id": self.catalog_id,
            "variant_id": self.variant_id,
            "item_number_key": self.item_number_key,
            "condition": self.condition,
            "composite": self.composite,
            "junk_penalty": self.junk_penalty,
            "signals": self.signals,
            "retrieval_strategy": self.retrieval_strategy,
            "variant_resolution_method": self.variant_resolution_method,
            "weights_version": self.weights_version,
            "is_correct_match": self.is_correct_match,
            "incorrect_reason": self.incorrect_reason,
            "correct_catalog_id": self.correct_catalog_id,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
