"""SQLAlchemy adapters implementing the domain ports"""

from .catalog_repository import CatalogRepository
from .confusion_repository import ConfusionRepository
from .weight_repository import WeightRepository
from .match_record_repository import MatchRecordRepository
from .junk_report_repository import JunkReportRepository

__all__ = [
    "CatalogRepository",
    "ConfusionRepository",
    "WeightRepository",
    "MatchRecordRepository",
    "JunkReportRepository",
]
