"""Tests for CatalogService: authorization and seeding."""

import pytest

from aoc_ranking.errors import NotFoundError, UnauthorizedError, ValidationError
from aoc_ranking.ingestion.adapters.seed_feed import DEMO_BATCH, SeedFileFeed
from aoc_ranking.services.catalog_service import CatalogService

from conftest import NOW, FakeFeed, make_wine


@pytest.fixture
def feed():
    return FakeFeed(None)


@pytest.fixture
def service(store, feed, clock):
    return CatalogService(store, feed=feed, threshold_days=75, clock=clock)


class TestAuthorization:
    def test_unauthorized_override_rejected(self, service, store):
        service.ingest([make_wine("a")], authorized=True)
        wine = store.get_wine_by_external_id("a")

        with pytest.raises(UnauthorizedError):
            service.set_override(wine.id, 10, authorized=False)

        assert store.get_override(wine.id) is None

    def test_unauthorized_ingest_rejected(self, service, store):
        with pytest.raises(UnauthorizedError):
            service.ingest([make_wine("a")], authorized=False)
        assert store.count() == 0

    def test_unauthorized_refresh_rejected(self, service, feed):
        with pytest.raises(UnauthorizedError):
            service.trigger_refresh_now(authorized=False)
        assert feed.fetch_count == 0


class TestOverrides:
    def test_returns_rescored_wine(self, service, store):
        service.ingest([make_wine("x1", base_score=4.4)], authorized=True)
        wine = store.get_wine_by_external_id("x1")

        ranked = service.set_override(wine.id, 5, authorized=True)

        assert ranked.effective_score == pytest.approx(4.62)
        assert ranked.has_override is True

    def test_unknown_wine(self, service):
        with pytest.raises(NotFoundError):
            service.set_override(123, 5, authorized=True)

    def test_out_of_range(self, service, store):
        service.ingest([make_wine("a")], authorized=True)
        wine = store.get_wine_by_external_id("a")
        with pytest.raises(ValidationError):
            service.set_override(wine.id, -40, authorized=True)


class TestSeeding:
    def test_empty_catalog_gets_demo_batch(self, service, store):
        stats = service.seed_if_empty()

        assert stats.records_added == len(DEMO_BATCH)
        assert stats.source_name == "demo_seed"
        assert store.get_refresh_meta() == NOW

    def test_feed_data_preferred_over_demo(self, store, clock):
        feed = FakeFeed([make_wine("seed-1")], name="seed_file")
        service = CatalogService(store, feed=feed, clock=clock)

        stats = service.seed_if_empty()

        assert stats.source_name == "seed_file"
        assert store.count() == 1

    def test_non_empty_catalog_untouched(self, service, store):
        service.ingest([make_wine("a")], authorized=True)
        assert service.seed_if_empty() is None
        assert store.count() == 1

    def test_demo_disabled_and_no_feed(self, service, store):
        assert service.seed_if_empty(use_demo=False) is None
        assert store.count() == 0

    def test_seed_file_feed(self, store, clock, tmp_path):
        seed = tmp_path / "seed.json"
        seed.write_text('[{"name": "Château Seed", "aoc": "Pomerol", "rating": 4.3}]', encoding="utf-8")
        service = CatalogService(store, feed=SeedFileFeed(str(seed)), clock=clock)

        service.seed_if_empty()

        assert store.get_wine_by_external_id("Château Seed||Pomerol").base_score == 4.3

    def test_missing_seed_file_is_no_data(self, tmp_path):
        assert SeedFileFeed(str(tmp_path / "absent.json")).fetch_batch() is None
