"""Unit tests for TaxonomyIndex, taxonomy sources and the TTL cache."""
import pytest

from vehicle_ingestion.errors.exceptions import FileParseError
from vehicle_ingestion.models.matching import MatchScope
from vehicle_ingestion.models.taxonomy import MasterTaxonomyEntry, TaxonomyKind
from vehicle_ingestion.parsers import CsvParser
from vehicle_ingestion.services.taxonomy_index import (
    MasterSheetTaxonomySource,
    StaticTaxonomySource,
    TaxonomyIndex,
    TaxonomyIndexCache,
)


class CountingSource(StaticTaxonomySource):
    """Static source that counts full loads (one per MAKE request)."""

    def __init__(self, entries):
        super().__init__(entries)
        self.loads = 0

    async def load_taxonomy(self, kind):
        if kind is TaxonomyKind.MAKE:
            self.loads += 1
        return await super().load_taxonomy(kind)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTaxonomyIndex:
    """Tests for TaxonomyIndex lookups."""

    def test_candidates_by_kind_and_parent(self, taxonomy_index):
        all_models = taxonomy_index.candidates(MatchScope(kind=TaxonomyKind.MODEL))
        toyota_models = taxonomy_index.candidates(
            MatchScope(kind=TaxonomyKind.MODEL, parent_id="make:toyota")
        )

        assert len(all_models) == 5
        assert [c.entry.name for c in toyota_models] == ["Camry", "Corolla"]

    def test_forms_are_normalized_name_then_synonyms(self, taxonomy_index):
        makes = taxonomy_index.candidates(MatchScope(kind=TaxonomyKind.MAKE))
        benz = next(c for c in makes if c.entry.id == "make:mercedes-benz")

        assert benz.forms == ("mercedes-benz", "benz", "mercedes")

    def test_exact_lookup_respects_scope(self, taxonomy_index):
        honda_scope = MatchScope(kind=TaxonomyKind.MODEL, parent_id="make:honda")
        toyota_scope = MatchScope(kind=TaxonomyKind.MODEL, parent_id="make:toyota")

        assert [e.id for e in taxonomy_index.exact("civic", honda_scope)] == ["model:honda/civic"]
        assert taxonomy_index.exact("civic", toyota_scope) == ()

    def test_orphans_are_dropped(self, taxonomy_entries):
        orphan_model = MasterTaxonomyEntry(
            id="model:ghost/x", name="X", kind=TaxonomyKind.MODEL, parent_id="make:ghost"
        )
        wrong_parent_kind = MasterTaxonomyEntry(
            id="variant:bad", name="Bad", kind=TaxonomyKind.VARIANT, parent_id="make:toyota"
        )

        index = TaxonomyIndex(taxonomy_entries + [orphan_model, wrong_parent_kind])

        assert len(index) == len(taxonomy_entries)
        assert index.get("model:ghost/x") is None
        assert index.get("variant:bad") is None

    def test_duplicate_ids_keep_first(self, taxonomy_entries):
        duplicate = MasterTaxonomyEntry(id="make:toyota", name="Toyota Motors", kind=TaxonomyKind.MAKE)

        index = TaxonomyIndex(taxonomy_entries + [duplicate])

        assert index.get("make:toyota").name == "Toyota"

    @pytest.mark.asyncio
    async def test_build_from_source(self, taxonomy_entries):
        index = await TaxonomyIndex.build(StaticTaxonomySource(taxonomy_entries))

        assert len(index) == len(taxonomy_entries)


class TestMasterSheetTaxonomySource:
    """Tests for loading the taxonomy from a master spreadsheet."""

    @pytest.mark.asyncio
    async def test_builds_tree_from_rows(self, make_csv):
        data = make_csv([
            ["Brand", "Model", "Trim"],
            ["Honda", "Accord", "EX"],
            ["Honda", "Accord", "EX-L"],
            ["Toyota", "Camry", "LE"],
            ["Toyota", "", "SE"],
        ])
        source = MasterSheetTaxonomySource(CsvParser(), data, filename="master.csv")

        index = await TaxonomyIndex.build(source)

        makes = index.candidates(MatchScope(kind=TaxonomyKind.MAKE))
        accord_variants = index.candidates(
            MatchScope(kind=TaxonomyKind.VARIANT, parent_id="model:honda/accord")
        )
        assert [c.entry.name for c in makes] == ["Honda", "Toyota"]
        assert [c.entry.id for c in accord_variants] == [
            "variant:honda/accord/ex",
            "variant:honda/accord/ex-l",
        ]
        assert len(index) == 7

    @pytest.mark.asyncio
    async def test_missing_columns(self, make_csv):
        source = MasterSheetTaxonomySource(CsvParser(), make_csv([["Make", "Model"], ["Honda", "Civic"]]))

        with pytest.raises(FileParseError, match="missing columns"):
            await source.load_taxonomy(TaxonomyKind.MAKE)


class TestTaxonomyIndexCache:
    """Tests for TaxonomyIndexCache TTL behavior."""

    @pytest.mark.asyncio
    async def test_reuses_index_within_ttl(self, taxonomy_entries):
        source = CountingSource(taxonomy_entries)
        clock = FakeClock()
        cache = TaxonomyIndexCache(source, ttl_seconds=3600, clock=clock)

        first = await cache.get_index()
        clock.now += 3599
        second = await cache.get_index()

        assert first is second
        assert source.loads == 1

    @pytest.mark.asyncio
    async def test_reloads_after_ttl(self, taxonomy_entries):
        source = CountingSource(taxonomy_entries)
        clock = FakeClock()
        cache = TaxonomyIndexCache(source, ttl_seconds=3600, clock=clock)

        first = await cache.get_index()
        clock.now += 3600
        second = await cache.get_index()

        assert first is not second
        assert source.loads == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self, taxonomy_entries):
        source = CountingSource(taxonomy_entries)
        cache = TaxonomyIndexCache(source, ttl_seconds=3600)

        await cache.get_index()
        cache.invalidate()
        await cache.get_index()

        assert source.loads == 2
