"""Junk report SQLAlchemy model.

Reviewer reports of listings that should have been rejected as junk,
with the novel tokens learned from their titles.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Text, Integer, Index, DateTime, func

from .base import Base, PortableJSONB


class JunkReport(Base):
    __tablename__ = "junk_report"
    __table_args__ = (
        Index("ix_junk_report_listing", "listing_id", unique=True),
        Index("ix_junk_report_seller", "seller_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    listing_id = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    seller_name = Column(Text, nullable=True)
    learned_tokens = Column(PortableJSONB, nullable=False, default=list)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
