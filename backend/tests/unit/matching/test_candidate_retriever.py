"""Unit tests for the candidate retrieval cascade"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.extraction.models import RawListing, ListingAspect
from domain.extraction.pipeline import extract_signals
from domain.matching.candidate_retriever import CandidateRetriever, narrow_by_collection
from domain.matching.models import RetrievalStrategy
from fixtures.fakes import FailingCatalog, FakeCatalog, catalog_item, charizard_obsidian_flames


def listing(title, **kwargs):
    return extract_signals(RawListing(id="l", title=title, **kwargs)).listing


class TestCascade:

    def test_number_and_denominator(self, catalog):
        result = CandidateRetriever(catalog).retrieve(listing("charizard ex 006/197"))
        assert result.strategy == RetrievalStrategy.NUMBER_DENOMINATOR
        assert [c.catalog_id for c in result.candidates] == ["sv3-6"]
        assert catalog.calls == [("number_denominator", "6", 197)]

    def test_prefix_lookup_for_promos(self):
        promo = catalog_item("swshp-50", "Pikachu V", "SWSH050", None, "SWSH Black Star Promos", "swshp")
        catalog = FakeCatalog([promo])
        result = CandidateRetriever(catalog).retrieve(listing("pikachu v swsh050 promo"))
        assert result.strategy == RetrievalStrategy.NUMBER_PREFIX
        assert result.candidates == (promo,)

    def test_falls_back_to_number_only(self, catalog):
        # Wrong denominator typed by the seller
        result = CandidateRetriever(catalog).retrieve(listing("charizard ex 006/198"))
        assert result.strategy == RetrievalStrategy.NUMBER_ONLY
        assert [call[0] for call in catalog.calls] == ["number_denominator", "number_only"]

    def test_name_fuzzy_only_without_number(self, catalog):
        result = CandidateRetriever(catalog).retrieve(listing("charizard ex holo"))
        assert result.strategy == RetrievalStrategy.NAME_FUZZY
        assert catalog.calls == [("name_fuzzy", "charizard ex", 20)]

    def test_number_without_hits_does_not_search_names(self, catalog):
        result = CandidateRetriever(catalog).retrieve(listing("charizard ex 099/197"))
        assert result.strategy == RetrievalStrategy.NONE
        assert result.candidates == ()
        assert all(call[0] != "name_fuzzy" for call in catalog.calls)

    def test_nothing_to_search(self, catalog):
        result = CandidateRetriever(catalog).retrieve(listing("pokemon card"))
        assert result.strategy == RetrievalStrategy.NONE
        assert catalog.calls == []

    def test_number_only_narrowed_by_set_name(self):
        items = [
            catalog_item(f"set{i}-6", "Charmander", "6", 100 + i, f"Set {i}", f"s{i}")
            for i in range(6)
        ]
        items.append(charizard_obsidian_flames())
        catalog = FakeCatalog(items)
        result = CandidateRetriever(catalog).retrieve(listing(
            "charizard ex #6", aspects=[ListingAspect(name="Set", value="Obsidian Flames")]
        ))
        assert result.strategy == RetrievalStrategy.NUMBER_ONLY
        assert [c.catalog_id for c in result.candidates] == ["sv3-6"]

    def test_catalog_errors_propagate(self):
        retriever = CandidateRetriever(FailingCatalog(ConnectionError("catalog down")))
        with pytest.raises(ConnectionError):
            retriever.retrieve(listing("charizard ex 006/197"))


class TestNarrowByCollection:

    def test_no_match_keeps_candidates(self):
        items = [charizard_obsidian_flames()]
        assert narrow_by_collection(items, "base set") == items

    def test_code_match(self):
        items = [charizard_obsidian_flames()]
        assert narrow_by_collection(items, "SV3") == items
