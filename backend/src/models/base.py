"""Declarative base and column types shared by the listing matcher tables.

Tables: catalog_card and catalog_variant (the read-only card catalog),
match_record (accepted matches and their reviews), confusion_pair (known
wrong matches per item number), weight_override (append-only calibrated
weight sets) and junk_report (user-reported junk listings).
"""

from sqlalchemy.orm import declarative_base
from sqlalchemy import TypeDecorator, JSON
from sqlalchemy.dialects.postgresql import JSONB


class PortableJSONB(TypeDecorator):
    """JSONB on PostgreSQL, plain JSON elsewhere.

    Holds signal breakdowns, weight sets and calibration metadata. The
    SQLite fallback lets repository tests run on an in-memory database.
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(JSON())


Base = declarative_base()
