"""Tests for CatalogStore: upserts, overrides, queries, refresh metadata."""

import sqlite3
from datetime import timedelta

import pytest

from aoc_ranking.errors import NotFoundError, StorageError, ValidationError
from aoc_ranking.models.catalog import ImportRecord, WineFilter
from aoc_ranking.services.catalog_store import CatalogStore

from conftest import NOW


def _record(external_id="x1", name="Château Test", appellation="Pauillac",
            base_score=4.0, **kwargs) -> ImportRecord:
    return ImportRecord(
        external_id=external_id,
        name=name,
        appellation=appellation,
        base_score=base_score,
        producer=kwargs.get("producer"),
        vintage=kwargs.get("vintage"),
        review_count=kwargs.get("review_count", 0),
        price=kwargs.get("price"),
    )


class TestUpsert:
    def test_insert_assigns_id_and_timestamps(self, store):
        wine_id, is_new = store.upsert_wine(_record(), NOW)

        assert is_new is True
        wine = store.get_wine(wine_id)
        assert wine.external_id == "x1"
        assert wine.created_at == NOW
        assert wine.updated_at == NOW
        assert wine.source_updated_at == NOW

    def test_second_upsert_updates_in_place(self, store):
        wine_id, _ = store.upsert_wine(_record(base_score=4.0), NOW)
        later = NOW + timedelta(days=1)

        same_id, is_new = store.upsert_wine(_record(base_score=4.3, price=60.0), later)

        assert same_id == wine_id
        assert is_new is False
        wine = store.get_wine(wine_id)
        assert wine.base_score == 4.3
        assert wine.price == 60.0
        assert wine.created_at == NOW
        assert wine.updated_at == later
        assert store.count() == 1

    def test_lookup_by_external_id(self, store):
        store.upsert_wine(_record(external_id="abc"), NOW)
        assert store.get_wine_by_external_id("abc").name == "Château Test"
        assert store.get_wine_by_external_id("missing") is None

    def test_get_unknown_wine_returns_none(self, store):
        assert store.get_wine(999) is None
        assert store.get_ranked(999) is None


class TestOverrides:
    def test_set_and_get_override(self, store):
        wine_id, _ = store.upsert_wine(_record(), NOW)

        store.set_override(wine_id, 10, NOW)

        override = store.get_override(wine_id)
        assert override.adjustment_percent == 10
        assert override.updated_at == NOW

    def test_replacing_override_keeps_one_row(self, store, db_path):
        wine_id, _ = store.upsert_wine(_record(), NOW)
        store.set_override(wine_id, 10, NOW)
        store.set_override(wine_id, -5, NOW)

        assert store.get_override(wine_id).adjustment_percent == -5
        conn = sqlite3.connect(db_path)
        assert conn.execute("SELECT COUNT(*) FROM admin_overrides").fetchone()[0] == 1
        conn.close()

    def test_override_for_unknown_wine_raises(self, store):
        with pytest.raises(NotFoundError):
            store.set_override(42, 5, NOW)

    def test_out_of_range_override_rejected_and_previous_kept(self, store):
        wine_id, _ = store.upsert_wine(_record(), NOW)
        store.set_override(wine_id, 10, NOW)

        with pytest.raises(ValidationError):
            store.set_override(wine_id, 30, NOW)

        assert store.get_override(wine_id).adjustment_percent == 10

    def test_upsert_never_touches_override(self, store):
        wine_id, _ = store.upsert_wine(_record(base_score=4.0), NOW)
        store.set_override(wine_id, 20, NOW)

        store.upsert_wine(_record(base_score=4.5), NOW + timedelta(days=1))

        ranked = store.get_ranked(wine_id)
        assert ranked.has_override is True
        assert ranked.adjustment_percent == 20
        assert ranked.effective_score == pytest.approx(5.4)

    def test_deleting_wine_removes_override(self, store):
        wine_id, _ = store.upsert_wine(_record(), NOW)
        store.set_override(wine_id, 10, NOW)

        assert store.delete_wine(wine_id) is True
        assert store.get_override(wine_id) is None
        assert store.delete_wine(wine_id) is False

    def test_missing_override_means_zero(self, store):
        wine_id, _ = store.upsert_wine(_record(base_score=3.9), NOW)
        ranked = store.get_ranked(wine_id)
        assert ranked.has_override is False
        assert ranked.adjustment_percent == 0.0
        assert ranked.effective_score == 3.9


class TestQueries:
    @pytest.fixture
    def populated(self, store):
        store.upsert_wine(_record("a", "Château Margaux", "Margaux", 4.6), NOW)
        store.upsert_wine(_record("b", "Château Palmer", "Margaux", 4.4), NOW)
        store.upsert_wine(_record("c", "Château Lafite", "Pauillac", 4.5, producer="Rothschild"), NOW)
        store.upsert_wine(_record("d", "Château Léoville", "Saint-Julien", 4.1), NOW)
        return store

    def test_appellation_filter(self, populated):
        results = populated.query_wines(WineFilter(appellation="Margaux"))
        assert {r.wine.external_id for r in results} == {"a", "b"}

    def test_text_query_matches_name_or_producer_case_insensitive(self, populated):
        by_name = populated.query_wines(WineFilter(query="palmer"))
        by_producer = populated.query_wines(WineFilter(query="ROTHSCHILD"))
        assert [r.wine.external_id for r in by_name] == ["b"]
        assert [r.wine.external_id for r in by_producer] == ["c"]

    def test_text_query_handles_accents(self, populated):
        results = populated.query_wines(WineFilter(query="LÉOVILLE"))
        assert [r.wine.external_id for r in results] == ["d"]

    def test_score_bounds_use_effective_score(self, populated):
        palmer = populated.get_wine_by_external_id("b")
        populated.set_override(palmer.id, 10, NOW)  # 4.4 -> 4.84

        results = populated.query_wines(WineFilter(min_score=4.7))

        assert {r.wine.external_id for r in results} == {"b"}

    def test_score_bounds_are_inclusive(self, populated):
        results = populated.query_wines(WineFilter(min_score=4.5, max_score=4.5))
        assert [r.wine.external_id for r in results] == ["c"]

    def test_blank_filters_mean_no_filter(self, populated):
        results = populated.query_wines(WineFilter(appellation="  ", query=""))
        assert len(results) == 4

    def test_list_appellations_sorted_with_counts(self, populated):
        appellations = populated.list_appellations()
        assert [(a.appellation, a.count) for a in appellations] == [
            ("Margaux", 2),
            ("Pauillac", 1),
            ("Saint-Julien", 1),
        ]

    def test_empty_catalog(self, store):
        assert store.query_wines() == []
        assert store.list_appellations() == []
        assert store.count() == 0


class TestBatchIngestion:
    def test_batch_sets_refresh_stamp(self, store):
        inserted, updated = store.ingest_batch([_record("a"), _record("b")], NOW)

        assert (inserted, updated) == (2, 0)
        assert store.get_refresh_meta() == NOW

    def test_failed_batch_writes_nothing(self, store):
        store.ingest_batch([_record("a")], NOW)
        bad = _record("b", review_count=-1)  # violates CHECK constraint

        with pytest.raises(StorageError):
            store.ingest_batch([_record("c"), bad], NOW + timedelta(days=80))

        assert store.count() == 1
        assert store.get_wine_by_external_id("c") is None
        assert store.get_refresh_meta() == NOW

    def test_refresh_meta_absent_before_first_ingestion(self, store):
        assert store.get_refresh_meta() is None


class TestStorageErrors:
    def test_unopenable_database_raises_storage_error(self, tmp_path):
        store = CatalogStore(db_path=str(tmp_path / "missing-dir" / "catalog.db"))
        with pytest.raises(StorageError):
            store.count()

    def test_unstorable_integer_is_storage_error(self, store):
        with pytest.raises(StorageError):
            store.ingest_batch([_record("a"), _record("b", review_count=10 ** 30)], NOW)

        assert store.count() == 0
        assert store.get_refresh_meta() is None


class TestSchema:
    def test_only_appellation_is_indexed(self, db_path):
        conn = sqlite3.connect(db_path)
        names = {row[0] for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'wines' AND sql IS NOT NULL"
        )}
        conn.close()
        assert names == {"idx_wines_appellation"}
