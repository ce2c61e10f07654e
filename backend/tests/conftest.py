"""
Pytest configuration for the AOC ranking tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from aoc_ranking.db import ensure_schema
from aoc_ranking.ingestion.pipeline import IngestionPipeline
from aoc_ranking.services.catalog_store import CatalogStore

# Fixed "now" so staleness arithmetic is exact
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    # Mark the service as ready for tests (bypasses warmup middleware)
    # This is needed because TestClient doesn't trigger lifespan events
    from main import set_ready
    set_ready(True)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeFeed:
    """In-memory feed that counts how often it was read."""

    def __init__(self, batch=None, name: str = "fake_feed"):
        self.batch = batch
        self.name = name
        self.fetch_count = 0

    def fetch_batch(self):
        self.fetch_count += 1
        return self.batch

    def get_source_name(self) -> str:
        return self.name


def make_wine(external_id="x1", name="Château Test", appellation="Pauillac",
              base_score=4.0, **kwargs) -> dict:
    """Raw import record with sensible defaults."""
    record = {
        "external_id": external_id,
        "name": name,
        "appellation": appellation,
        "base_score": base_score,
        "producer": kwargs.get("producer", "Test Estate"),
        "vintage": kwargs.get("vintage", 2018),
        "review_count": kwargs.get("review_count", 100),
        "price": kwargs.get("price", 50.0),
    }
    return record


@pytest.fixture
def db_path(tmp_path):
    """Create a fresh DB with schema applied."""
    path = str(tmp_path / "catalog.db")
    ensure_schema(path)
    return path


@pytest.fixture
def store(db_path):
    store = CatalogStore(db_path=db_path)
    yield store
    store.close()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def pipeline(store, clock):
    return IngestionPipeline(store, clock=clock)
