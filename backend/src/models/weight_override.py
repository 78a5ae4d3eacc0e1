"""Weight override SQLAlchemy model.

Append-only history of calibrated weight sets. The row id is the weight
set version; the highest id is the active set. Rows are never updated.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, DateTime, func

from .base import Base, PortableJSONB


class WeightOverride(Base):
    __tablename__ = "weight_override"

    id = Column(Integer, primary_key=True, autoincrement=True)
    weights = Column(PortableJSONB, nullable=False)
    baseline_weights = Column(PortableJSONB, nullable=True)
    sample_size = Column(Integer, nullable=False, default=0)
    accuracy_before = Column(Float, nullable=True)
    accuracy_after = Column(Float, nullable=True)
    # "metadata" is reserved on declarative classes
    meta_json = Column("metadata", PortableJSONB, nullable=False, default=dict)
    calibrated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
