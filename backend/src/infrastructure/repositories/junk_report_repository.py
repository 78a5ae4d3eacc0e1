"""Junk report repository"""

from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from domain.extraction.ports import JunkReportStorePort
from models.catalog import CatalogCard
from models.junk_report import JunkReport


class JunkReportRepository(JunkReportStorePort):
    """SQLAlchemy implementation of the junk report store"""

    def __init__(self, db: Session):
        self.db = db

    def load_learned_tokens(self) -> Set[str]:
        tokens: Set[str] = set()
        for learned in self.db.execute(select(JunkReport.learned_tokens)).scalars().all():
            tokens.update(t.lower() for t in (learned or []))
        return tokens

    def load_seller_report_counts(self, min_reports: int) -> Dict[str, int]:
        query = (
            select(JunkReport.seller_name, func.count(JunkReport.id))
            .where(JunkReport.seller_name.isnot(None))
            .group_by(JunkReport.seller_name)
            .having(func.count(JunkReport.id) >= min_reports)
        )
        return {seller: count for seller, count in self.db.execute(query).all()}

    def catalog_words(self, tokens: Iterable[str], catalog_id: Optional[str]) -> Set[str]:
        """Tokens that occur in catalog card or collection names.

        With a catalog id only that card's names are consulted; otherwise
        any card whose name or collection contains one of the tokens.
        """
        tokens = [t.lower() for t in tokens]
        if not tokens:
            return set()

        if catalog_id:
            query = select(CatalogCard.name, CatalogCard.collection_name).where(
                CatalogCard.catalog_id == catalog_id
            )
        else:
            conditions = []
            for token in tokens:
                pattern = f"%{token}%"
                conditions.append(func.lower(CatalogCard.name).like(pattern))
                conditions.append(func.lower(CatalogCard.collection_name).like(pattern))
            query = select(CatalogCard.name, CatalogCard.collection_name).where(or_(*conditions))

        words: Set[str] = set()
        for name, collection_name in self.db.execute(query).all():
            words.update(f"{name} {collection_name}".lower().split())
        return words & set(tokens)

    def save_report(
        self,
        listing_id: str,
        title: str,
        seller_name: Optional[str],
        learned_tokens: List[str],
    ) -> None:
        existing = self.db.execute(
            select(JunkReport.id).where(JunkReport.listing_id == listing_id)
        ).first()
        if existing is not None:
            return
        self.db.add(JunkReport(
            listing_id=listing_id,
            title=title,
            seller_name=seller_name,
            learned_tokens=list(learned_tokens),
        ))
        self.db.flush()
