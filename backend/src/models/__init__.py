"""SQLAlchemy Models for the listing matcher"""

from .base import Base
from .catalog import CatalogCard, CatalogVariant
from .match_record import MatchRecord
from .confusion_pair import ConfusionPair
from .weight_override import WeightOverride
from .junk_report import JunkReport

__all__ = [
    "Base",
    "CatalogCard",
    "CatalogVariant",
    "MatchRecord",
    "ConfusionPair",
    "WeightOverride",
    "JunkReport",
]
