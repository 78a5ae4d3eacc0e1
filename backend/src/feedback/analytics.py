"""Review accuracy analytics"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from infrastructure.repositories.match_record_repository import MatchRecordRepository

from .schemas import AccuracyStats, ReasonCount

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7
ACCURACY_ALERT_THRESHOLD = 80.0
MIN_REVIEWED_FOR_ALERT = 10


class AccuracyAnalytics:
    """Rolling accuracy of reviewed matches"""

    def __init__(
        self,
        records: MatchRecordRepository,
        window_days: int = WINDOW_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.records = records
        self.window_days = window_days
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_stats(self) -> AccuracyStats:
        since = self._clock() - timedelta(days=self.window_days)
        reviewed = self.records.reviewed_since(since)

        correct = sum(1 for r in reviewed if r.is_correct_match)
        incorrect = len(reviewed) - correct
        reasons = Counter(r.incorrect_reason or "unspecified" for r in reviewed if not r.is_correct_match)

        return AccuracyStats(
            window_days=self.window_days,
            total_reviewed=len(reviewed),
            correct=correct,
            incorrect=incorrect,
            accuracy=round(correct / len(reviewed) * 100, 1) if reviewed else None,
            reasons=[ReasonCount(reason=reason, count=count) for reason, count in reasons.most_common()],
        )

    def is_below_threshold(self, stats: Optional[AccuracyStats] = None) -> bool:
        """True when accuracy is under the alert threshold with enough reviews.

        Logs a warning when the threshold is crossed.
        """
        stats = stats or self.get_stats()
        if stats.total_reviewed < MIN_REVIEWED_FOR_ALERT or stats.accuracy is None:
            return False
        if stats.accuracy >= ACCURACY_ALERT_THRESHOLD:
            return False

        logger.warning(
            f"Match accuracy {stats.accuracy:.1f}% below {ACCURACY_ALERT_THRESHOLD:.0f}% "
            f"over {stats.total_reviewed} reviews in the last {stats.window_days} days"
        )
        return True
