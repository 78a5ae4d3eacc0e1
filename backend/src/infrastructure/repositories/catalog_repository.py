"""Catalog repository for candidate retrieval queries"""

from types import MappingProxyType
from typing import List

from rapidfuzz import fuzz, process, utils
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from domain.matching.models import CatalogItem, Variant, parse_price_map
from domain.matching.ports import CatalogReaderPort
from models.catalog import CatalogCard, CatalogVariant

# pg_trgm's default similarity threshold, on rapidfuzz's 0-100 scale
FUZZY_SCORE_CUTOFF = 30


def to_catalog_item(card: CatalogCard) -> CatalogItem:
    """Convert a CatalogCard row (variants loaded) into a domain CatalogItem"""
    return CatalogItem(
        catalog_id=card.catalog_id,
        name=card.name,
        number=card.number,
        number_normalized=card.number_normalized,
        printed_total=card.printed_total,
        collection_id=card.collection_id,
        collection_name=card.collection_name,
        collection_code=card.collection_code,
        variants=tuple(_to_variant(v) for v in card.variants),
    )


def _to_variant(variant: CatalogVariant) -> Variant:
    return Variant(
        variant_id=str(variant.id),
        name=variant.name,
        raw_prices=parse_price_map(variant.prices),
        graded_prices=parse_price_map(variant.graded_prices) if variant.graded_prices else None,
        trends=MappingProxyType(dict(variant.trends or {})),
    )


class CatalogRepository(CatalogReaderPort):
    """SQLAlchemy implementation of the four catalog read queries.

    Limits apply to cards, not to joined variant rows. Fuzzy name search
    uses pg_trgm on PostgreSQL and rapidfuzz scoring elsewhere.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _cards(self, query) -> List[CatalogItem]:
        query = query.options(selectinload(CatalogCard.variants))
        return [to_catalog_item(card) for card in self.db.execute(query).scalars().all()]

    def by_number_and_denominator(self, number_key: str, denominator: int) -> List[CatalogItem]:
        query = (
            select(CatalogCard)
            .where(
                CatalogCard.number_normalized == number_key,
                CatalogCard.printed_total == denominator,
            )
            .order_by(CatalogCard.catalog_id)
        )
        return self._cards(query)

    def by_number_and_prefix(self, number_key: str, prefix: str) -> List[CatalogItem]:
        query = (
            select(CatalogCard)
            .where(
                CatalogCard.number_normalized == number_key,
                func.upper(CatalogCard.number).like(f"{prefix.upper()}%"),
            )
            .order_by(CatalogCard.catalog_id)
        )
        return self._cards(query)

    def by_number(self, number_key: str, limit: int = 50) -> List[CatalogItem]:
        query = (
            select(CatalogCard)
            .where(CatalogCard.number_normalized == number_key)
            .order_by(CatalogCard.catalog_id)
            .limit(limit)
        )
        return self._cards(query)

    def by_name_fuzzy(self, name: str, limit: int = 20) -> List[CatalogItem]:
        if self.db.get_bind().dialect.name == "postgresql":
            similarity = func.similarity(CatalogCard.name, name)
            query = (
                select(CatalogCard)
                .where(CatalogCard.name.op("%")(name))
                .order_by(similarity.desc(), CatalogCard.catalog_id)
                .limit(limit)
            )
            return self._cards(query)
        return self._by_name_rapidfuzz(name, limit)

    def _by_name_rapidfuzz(self, name: str, limit: int) -> List[CatalogItem]:
        rows = self.db.execute(
            select(CatalogCard.catalog_id, CatalogCard.name).order_by(CatalogCard.catalog_id)
        ).all()
        choices = {catalog_id: card_name for catalog_id, card_name in rows}
        ranked = process.extract(
            name,
            choices,
            scorer=fuzz.ratio,
            processor=utils.default_process,
            limit=limit,
            score_cutoff=FUZZY_SCORE_CUTOFF,
        )
        ids = [catalog_id for _, _, catalog_id in ranked]
        if not ids:
            return []

        by_id = {
            item.catalog_id: item
            for item in self._cards(select(CatalogCard).where(CatalogCard.catalog_id.in_(ids)))
        }
        return [by_id[catalog_id] for catalog_id in ids if catalog_id in by_id]
