"""
Extraction ports (interfaces) following Hexagonal Architecture.

The learned junk signals live in a store that reviewers write to; the
extraction domain only sees it through this port.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set


class JunkReportStorePort(ABC):
    """
    Port interface for the reviewer-reported junk listing store.
    """

    @abstractmethod
    def load_learned_tokens(self) -> Set[str]:
        """
        Load every token learned from junk reports.

        Returns:
            Set of lowercase tokens
        """
        pass

    @abstractmethod
    def load_seller_report_counts(self, min_reports: int) -> Dict[str, int]:
        """
        Load report counts for sellers reported at least `min_reports` times.

        Args:
            min_reports: Minimum number of reports for a seller to be included

        Returns:
            Mapping of seller name to report count
        """
        pass

    @abstractmethod
    def catalog_words(self, tokens: Iterable[str], catalog_id: Optional[str]) -> Set[str]:
        """
        Words that belong to catalog card/collection names.

        Args:
            tokens: Candidate tokens from a junk title
            catalog_id: Catalog item the junk listing was matched to, if any

        Returns:
            Lowercase words found in catalog names for these tokens
        """
        pass

    @abstractmethod
    def save_report(
        self,
        listing_id: str,
        title: str,
        seller_name: Optional[str],
        learned_tokens: List[str],
    ) -> None:
        """
        Persist a junk report. Reporting the same listing twice is a no-op.
        """
        pass
