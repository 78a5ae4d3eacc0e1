"""Integration tests for the SQLAlchemy repositories

Runs against an in-memory SQLite database; fuzzy name search therefore
exercises the rapidfuzz path.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import JSON
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.dialects.postgresql import JSONB

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.matching.models import (
    ConfidenceSignals,
    MatchConfidence,
    MatchResult,
    RetrievalStrategy,
    ReviewReason,
    VariantResolutionMethod,
    WeightSet,
)
from infrastructure.repositories import (
    CatalogRepository,
    ConfusionRepository,
    JunkReportRepository,
    MatchRecordRepository,
    WeightRepository,
)
from models.base import Base, PortableJSONB
from models.catalog import CatalogCard, CatalogVariant
from models.match_record import MatchRecord


def add_card(db, catalog_id, name, number, number_normalized, printed_total,
             collection_name, collection_code, variants=None):
    card = CatalogCard(
        catalog_id=catalog_id,
        name=name,
        number=number,
        number_normalized=number_normalized,
        printed_total=printed_total,
        collection_id=collection_code,
        collection_name=collection_name,
        collection_code=collection_code,
    )
    for variant_name, prices in (variants or {}).items():
        card.variants.append(CatalogVariant(name=variant_name, prices=prices, trends={}))
    db.add(card)
    db.flush()
    return card


@pytest.fixture
def seeded_catalog(db_session):
    add_card(
        db_session, "sv3-6", "Charizard ex", "006", "6", 197, "Obsidian Flames", "sv3",
        variants={
            "holofoil": {"NM": {"low": 80.0, "market": 100.0}},
            "reverseHolofoil": {"raw": {"NM": {"low": 20.0, "market": 30.0}}},
        },
    )
    add_card(db_session, "base1-4", "Charizard", "4", "4", 102, "Base Set", "base1")
    add_card(db_session, "sv3pt5-4", "Charmander", "004", "4", 165, "151", "mew")
    add_card(db_session, "swshp-50", "Pikachu V", "SWSH050", "50", None, "SWSH Black Star Promos", "swshp")
    db_session.commit()
    return CatalogRepository(db_session)


def match_result(listing_id="listing-1", catalog_id="sv3-6", number_key="6", name=1.0):
    signals = ConfidenceSignals(
        name=name, number=1.0, denominator=1.0, expansion=1.0, variant=0.85, normalization=1.0
    )
    return MatchResult(
        listing_id=listing_id,
        catalog_id=catalog_id,
        variant_id="1",
        item_name="Charizard ex",
        variant_name="holofoil",
        item_number_key=number_key,
        confidence=MatchConfidence(signals=signals, composite=0.984),
        retrieval_strategy=RetrievalStrategy.NUMBER_DENOMINATOR,
        variant_resolution_method=VariantResolutionMethod.KEYWORD_MATCH,
        weights_version=0,
    )


class TestCatalogRepository:

    def test_number_and_denominator(self, seeded_catalog):
        items = seeded_catalog.by_number_and_denominator("6", 197)
        assert [i.catalog_id for i in items] == ["sv3-6"]

        item = items[0]
        assert item.collection_name == "Obsidian Flames"
        assert [v.name for v in item.variants] == ["holofoil", "reverseHolofoil"]
        assert item.variants[0].raw_prices["NM"].market == 100.0
        # Nested "raw" price maps are unwrapped
        assert item.variants[1].raw_prices["NM"].market == 30.0

    def test_number_and_prefix(self, seeded_catalog):
        items = seeded_catalog.by_number_and_prefix("50", "swsh")
        assert [i.catalog_id for i in items] == ["swshp-50"]
        assert items[0].printed_total is None

    def test_number_only_respects_limit(self, seeded_catalog):
        assert [i.catalog_id for i in seeded_catalog.by_number("4")] == ["base1-4", "sv3pt5-4"]
        assert len(seeded_catalog.by_number("4", limit=1)) == 1

    def test_name_fuzzy_ranks_closest_first(self, seeded_catalog):
        items = seeded_catalog.by_name_fuzzy("charizard ex")
        assert items[0].catalog_id == "sv3-6"
        assert items[1].catalog_id == "base1-4"

    def test_name_fuzzy_no_hits(self, seeded_catalog):
        assert seeded_catalog.by_name_fuzzy("zzzzzzzz") == []


class TestWeightRepository:

    def test_empty_store(self, db_session):
        assert WeightRepository(db_session).get_active() is None

    def test_append_assigns_versions(self, db_session):
        repo = WeightRepository(db_session)
        weights = WeightSet.from_dict({
            "name": 0.34, "number": 0.142, "denominator": 0.236,
            "expansion": 0.094, "variant": 0.094, "normalization": 0.094,
        })

        first = repo.append(weights, {"sample_size": 25, "accuracy_before": 80.0})
        second = repo.append(weights, {"sample_size": 30})

        assert (first.version, second.version) == (1, 2)
        active = repo.get_active()
        assert active.version == 2
        assert active.as_dict() == weights.as_dict()


class TestConfusionRepository:

    def test_latest_row_per_pair(self, db_session):
        repo = ConfusionRepository(db_session)
        repo.record("6", "sv3-6", ReviewReason.WRONG_SET, correct_catalog_id="a")
        repo.record("6", "sv3-6", ReviewReason.WRONG_ITEM, correct_catalog_id="b")
        repo.record("4", "base1-4", ReviewReason.WRONG_VARIANT, match_id=7, signals={"name": 1.0})

        records = {(r.item_number_key, r.wrong_catalog_id): r for r in repo.load_recent()}

        assert len(records) == 2
        assert records[("6", "sv3-6")].correct_catalog_id == "b"
        assert records[("6", "sv3-6")].reason == ReviewReason.WRONG_ITEM
        assert records[("4", "base1-4")].correct_catalog_id is None


class TestMatchRecordRepository:

    def test_save_and_get(self, db_session):
        repo = MatchRecordRepository(db_session)
        match_id = repo.save(match_result(), "Charizard ex 006/197 Holo", condition="NM")

        record = repo.get(match_id)
        assert record.catalog_id == "sv3-6"
        assert record.signals["variant"] == 0.85
        assert record.retrieval_strategy == "number_denominator"
        assert record.is_correct_match is None

    def test_fetch_reviewed(self, db_session):
        repo = MatchRecordRepository(db_session)
        unreviewed = repo.save(match_result("l-1"), "t1")
        good = repo.get(repo.save(match_result("l-2"), "t2"))
        bad = repo.get(repo.save(match_result("l-3", name=0.4), "t3"))

        repo.mark_reviewed(good, is_correct=True, reason="wrong_set")
        repo.mark_reviewed(bad, is_correct=False, reason="wrong_item", correct_catalog_id="base1-4")

        samples = repo.fetch_reviewed()

        assert len(samples) == 2
        assert {s.is_correct for s in samples} == {True, False}
        wrong = next(s for s in samples if not s.is_correct)
        assert wrong.incorrect_reason == "wrong_item"
        assert wrong.signals.name == 0.4
        # Correct matches never carry a reason
        assert good.incorrect_reason is None
        assert repo.get(unreviewed).reviewed_at is None

    def test_incomplete_signals_skipped(self, db_session):
        repo = MatchRecordRepository(db_session)
        record = repo.get(repo.save(match_result(), "t"))
        record.signals = {"name": 1.0}
        repo.mark_reviewed(record, is_correct=True)

        assert repo.fetch_reviewed() == []

    def test_reviewed_since(self, db_session):
        repo = MatchRecordRepository(db_session)
        old = repo.get(repo.save(match_result("l-1"), "t1"))
        recent = repo.get(repo.save(match_result("l-2"), "t2"))
        repo.mark_reviewed(old, is_correct=True)
        repo.mark_reviewed(recent, is_correct=False, reason="wrong_price")
        old.reviewed_at = datetime(2020, 1, 1, tzinfo=timezone.utc)
        db_session.flush()

        records = repo.reviewed_since(datetime(2025, 1, 1, tzinfo=timezone.utc))

        assert [r.listing_id for r in records] == ["l-2"]
        assert isinstance(records[0], MatchRecord)


class TestJunkReportRepository:

    def test_duplicate_report_ignored(self, db_session):
        repo = JunkReportRepository(db_session)
        repo.save_report("l-1", "charizard sticker", "seller", ["sticker"])
        repo.save_report("l-1", "charizard sticker", "seller", ["other"])

        assert repo.load_learned_tokens() == {"sticker"}

    def test_seller_report_counts(self, db_session):
        repo = JunkReportRepository(db_session)
        for i in range(3):
            repo.save_report(f"a-{i}", "title", "busy-seller", [])
        repo.save_report("b-1", "title", "quiet-seller", [])
        repo.save_report("c-1", "title", None, [])

        assert repo.load_seller_report_counts(3) == {"busy-seller": 3}
        assert repo.load_seller_report_counts(1) == {"busy-seller": 3, "quiet-seller": 1}

    def test_catalog_words(self, seeded_catalog, db_session):
        repo = JunkReportRepository(db_session)
        tokens = ["charizard", "sticker", "flames"]

        assert repo.catalog_words(tokens, "sv3-6") == {"charizard", "flames"}
        assert repo.catalog_words(["charizard", "sticker"], None) == {"charizard"}
        assert repo.catalog_words([], None) == set()


class TestSchema:

    def test_tables(self):
        assert set(Base.metadata.tables) == {
            "catalog_card", "catalog_variant", "match_record",
            "confusion_pair", "weight_override", "junk_report",
        }

    def test_portable_json_per_dialect(self):
        column_type = PortableJSONB()
        assert isinstance(column_type.load_dialect_impl(postgresql.dialect()), JSONB)
        assert isinstance(column_type.load_dialect_impl(sqlite.dialect()), JSON)
