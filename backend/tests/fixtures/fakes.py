"""In-memory fakes for the domain ports, plus catalog builders.

The fakes keep call logs so tests can assert which queries ran.
"""

import threading
from dataclasses import replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Set

from domain.calibration.models import ReviewedMatch
from domain.calibration.ports import ReviewCorpusPort
from domain.extraction.ports import JunkReportStorePort
from domain.matching.models import (
    CatalogItem,
    ConfusionRecord,
    MatchResult,
    PricePoint,
    ReviewReason,
    Variant,
    WeightSet,
)
from domain.matching.ports import (
    CatalogReaderPort,
    ConfusionStorePort,
    MatchRecordStorePort,
    WeightStorePort,
)


class FakeClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog(CatalogReaderPort):
    def __init__(self, items: List[CatalogItem]):
        self.items = list(items)
        self.calls: List[tuple] = []

    def by_number_and_denominator(self, number_key, denominator):
        self.calls.append(("number_denominator", number_key, denominator))
        return [
            i for i in self.items
            if i.number_normalized == number_key and i.printed_total == denominator
        ]

    def by_number_and_prefix(self, number_key, prefix):
        self.calls.append(("number_prefix", number_key, prefix))
        return [
            i for i in self.items
            if i.number_normalized == number_key and i.number.upper().startswith(prefix.upper())
        ]

    def by_number(self, number_key, limit=50):
        self.calls.append(("number_only", number_key, limit))
        return [i for i in self.items if i.number_normalized == number_key][:limit]

    def by_name_fuzzy(self, name, limit=20):
        self.calls.append(("name_fuzzy", name, limit))
        return [i for i in self.items if name.lower() in i.name.lower()][:limit]


class FailingCatalog(CatalogReaderPort):
    """Every query raises, like a catalog whose connection dropped"""

    def __init__(self, error: Exception):
        self.error = error

    def by_number_and_denominator(self, number_key, denominator):
        raise self.error

    def by_number_and_prefix(self, number_key, prefix):
        raise self.error

    def by_number(self, number_key, limit=50):
        raise self.error

    def by_name_fuzzy(self, name, limit=20):
        raise self.error


class FakeConfusionStore(ConfusionStorePort):
    def __init__(self, records: Optional[List[ConfusionRecord]] = None):
        self.records: List[ConfusionRecord] = list(records or [])
        self.load_count = 0
        self.fail_with: Optional[Exception] = None

    def load_recent(self):
        self.load_count += 1
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.records)

    def record(
        self,
        item_number_key,
        wrong_catalog_id,
        reason,
        correct_catalog_id=None,
        match_id=None,
        listing_title=None,
        signals=None,
    ):
        record = ConfusionRecord(
            item_number_key=item_number_key,
            wrong_catalog_id=wrong_catalog_id,
            reason=ReviewReason(reason),
            created_at=datetime.now(timezone.utc),
            correct_catalog_id=correct_catalog_id,
        )
        self.records.append(record)
        return record


class FakeWeightStore(WeightStorePort):
    def __init__(self):
        self.versions: List[WeightSet] = []
        self.metadata: List[Dict[str, Any]] = []

    def get_active(self):
        return self.versions[-1] if self.versions else None

    def append(self, weights, metadata):
        stored = replace(weights, version=len(self.versions) + 1)
        self.versions.append(stored)
        self.metadata.append(metadata)
        return stored


class FakeJunkReportStore(JunkReportStorePort):
    def __init__(self):
        self.learned: Set[str] = set()
        self.seller_counts: Dict[str, int] = {}
        self.catalog_vocabulary: Set[str] = set()
        self.reports: List[tuple] = []
        self.load_count = 0
        self.fail_with: Optional[Exception] = None

    def load_learned_tokens(self):
        self.load_count += 1
        if self.fail_with is not None:
            raise self.fail_with
        return set(self.learned)

    def load_seller_report_counts(self, min_reports):
        return {s: c for s, c in self.seller_counts.items() if c >= min_reports}

    def catalog_words(self, tokens, catalog_id):
        return {t for t in tokens if t in self.catalog_vocabulary}

    def save_report(self, listing_id, title, seller_name, learned_tokens):
        if any(r[0] == listing_id for r in self.reports):
            return
        self.reports.append((listing_id, title, seller_name, list(learned_tokens)))


class FakeRecordStore(MatchRecordStorePort):
    def __init__(self):
        self.saved: List[tuple] = []

    def save(self, result: MatchResult, listing_title: str, condition: Optional[str] = None):
        self.saved.append((result, listing_title, condition))
        return len(self.saved)


class FakeCorpus(ReviewCorpusPort):
    def __init__(self, samples: List[ReviewedMatch]):
        self.samples = list(samples)

    def fetch_reviewed(self):
        return list(self.samples)


def prices(**markets: float) -> MappingProxyType:
    """prices(NM=100.0, LP=80.0) -> {condition: PricePoint}"""
    return MappingProxyType({
        condition: PricePoint(low=market * 0.8, market=market)
        for condition, market in markets.items()
    })


def catalog_item(
    catalog_id: str,
    name: str,
    number: str,
    printed_total: Optional[int],
    collection_name: str,
    collection_code: str,
    variants=(),
) -> CatalogItem:
    digits = "".join(ch for ch in number if ch.isdigit())
    return CatalogItem(
        catalog_id=catalog_id,
        name=name,
        number=number,
        number_normalized=str(int(digits)) if digits else number,
        printed_total=printed_total,
        collection_id=collection_code,
        collection_name=collection_name,
        collection_code=collection_code,
        variants=tuple(variants),
    )


def charizard_obsidian_flames() -> CatalogItem:
    return catalog_item(
        "sv3-6",
        "Charizard ex",
        "006",
        197,
        "Obsidian Flames",
        "sv3",
        variants=[
            Variant(variant_id="holofoil", name="holofoil", raw_prices=prices(NM=100.0, LP=80.0)),
            Variant(variant_id="reverseHolofoil", name="reverseHolofoil", raw_prices=prices(NM=30.0)),
        ],
    )


def run_concurrently(fn, count: int = 10) -> List[Any]:
    """Call fn from count threads released together; returns their results"""
    start = threading.Barrier(count)
    results: List[Any] = []

    def worker():
        start.wait()
        results.append(fn())

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results
