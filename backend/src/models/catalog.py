"""Catalog SQLAlchemy models.

Read-only reference data for the matcher, populated by the catalog sync
job. A card belongs to one collection (expansion) and has zero or more
priced variants.
"""

from sqlalchemy import Column, Text, Integer, ForeignKey, Index, DateTime, func
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB


class CatalogCard(Base):
    """Catalog card keyed by the upstream catalog id.

    number_normalized holds the item number without leading zeros or
    promo prefix ("006" -> "6", "SWSH050" -> "50"); printed_total is the
    collection's printed denominator.
    """
    __tablename__ = "catalog_card"
    __table_args__ = (
        Index("ix_catalog_card_number_total", "number_normalized", "printed_total"),
        Index("ix_catalog_card_name", "name"),
    )

    catalog_id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    number = Column(Text, nullable=False)
    number_normalized = Column(Text, nullable=False)
    printed_total = Column(Integer, nullable=True)
    collection_id = Column(Text, nullable=False)
    collection_name = Column(Text, nullable=False)
    collection_code = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    variants = relationship(
        "CatalogVariant",
        back_populates="card",
        order_by="CatalogVariant.id",
        cascade="all, delete-orphan",
    )


class CatalogVariant(Base):
    """Priced variant of a catalog card.

    prices: {"NM": {"low": 1.2, "market": 2.5}, "LP": {...}, ...}
    graded_prices: {"PSA_10": {"low": ..., "market": ...}, ...}
    """
    __tablename__ = "catalog_variant"
    __table_args__ = (
        Index("ix_catalog_variant_card", "catalog_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    catalog_id = Column(Text, ForeignKey("catalog_card.catalog_id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    prices = Column(PortableJSONB, nullable=False, default=dict)
    graded_prices = Column(PortableJSONB, nullable=True)
    trends = Column(PortableJSONB, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    card = relationship("CatalogCard", back_populates="variants")
