"""
Calibration ports (interfaces) following Hexagonal Architecture.
"""
from abc import ABC, abstractmethod
from typing import List

from .models import ReviewedMatch


class ReviewCorpusPort(ABC):
    """
    Port interface for the reviewed-match training corpus.
    """

    @abstractmethod
    def fetch_reviewed(self) -> List[ReviewedMatch]:
        """
        Fetch every reviewed match that has stored signal scores.

        Returns:
            Reviewed matches, most recently reviewed first
        """
        pass
