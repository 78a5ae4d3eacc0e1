"""
Matching ports (interfaces) following Hexagonal Architecture.

The matcher depends only on these abstractions; SQLAlchemy adapters live in
infrastructure/repositories and tests use in-memory fakes.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import CatalogItem, ConfusionRecord, MatchResult, ReviewReason, WeightSet


class CatalogReaderPort(ABC):
    """
    Port interface for the read-only reference catalog.

    Every query returns items joined with their variants, in the order
    the strategy defines. I/O errors propagate to the caller.
    """

    @abstractmethod
    def by_number_and_denominator(self, number_key: str, denominator: int) -> List[CatalogItem]:
        """
        Items whose normalized number and printed total both match.
        """
        pass

    @abstractmethod
    def by_number_and_prefix(self, number_key: str, prefix: str) -> List[CatalogItem]:
        """
        Items whose normalized number matches and whose printed number
        starts with the promo prefix (case-insensitive).
        """
        pass

    @abstractmethod
    def by_number(self, number_key: str, limit: int = 50) -> List[CatalogItem]:
        """
        Items with this normalized number, at most `limit` items.
        """
        pass

    @abstractmethod
    def by_name_fuzzy(self, name: str, limit: int = 20) -> List[CatalogItem]:
        """
        Items whose name is similar to `name`, most similar first.
        """
        pass


class ConfusionStorePort(ABC):
    """
    Port interface for confirmed wrong-match records.
    """

    @abstractmethod
    def load_recent(self) -> List[ConfusionRecord]:
        """
        Load the latest record per (item number key, wrong catalog id).

        Returns:
            Records, any order
        """
        pass

    @abstractmethod
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
        """
        Append a confusion record.
        """
        pass


class WeightStorePort(ABC):
    """
    Port interface for the append-only weight set history.
    """

    @abstractmethod
    def get_active(self) -> Optional[WeightSet]:
        """
        Most recent weight set, or None when none was ever stored.
        """
        pass

    @abstractmethod
    def append(self, weights: WeightSet, metadata: Dict[str, Any]) -> WeightSet:
        """
        Store a new version. Existing versions are never updated.

        Returns:
            The stored WeightSet with its assigned version
        """
        pass


class MatchRecordStorePort(ABC):
    """
    Port interface for persisting produced matches for later review.
    """

    @abstractmethod
    def save(self, result: MatchResult, listing_title: str, condition: Optional[str] = None) -> Any:
        """
        Persist a match result.

        Returns:
            Identifier of the stored record
        """
        pass
