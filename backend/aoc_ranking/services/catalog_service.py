"""
Catalog service: the surface the HTTP routes and the CLI talk to.

Read operations are open to everyone. Mutating operations take an
`authorized` flag computed by the caller (HTTP Basic in the API, always
True in the CLI); this layer only enforces it.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..clock import utc_now
from ..errors import NotFoundError, UnauthorizedError
from ..ingestion.adapters.seed_feed import DEMO_BATCH, SeedFileFeed
from ..ingestion.normalizers import RawRecord
from ..ingestion.pipeline import IngestionPipeline
from ..ingestion.protocols import FeedSource, IngestionStats
from ..models.catalog import AppellationCount, RankedWine, WineFilter
from .catalog_store import CatalogStore
from .ranking import RankingEngine
from .scheduler import RefreshOutcome, RefreshScheduler, RefreshStatus

logger = logging.getLogger(__name__)


class CatalogService:
    """Facade over store, ranking, ingestion and refresh scheduling."""

    def __init__(
        self,
        store: CatalogStore,
        feed: Optional[FeedSource] = None,
        threshold_days: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.clock = clock
        self.feed = feed or SeedFileFeed()
        self.ranking = RankingEngine(store)
        self.pipeline = IngestionPipeline(store, clock=clock)
        self.scheduler = RefreshScheduler(
            store,
            self.pipeline,
            self.feed,
            threshold_days=threshold_days,
            clock=clock,
        )

    # === Read operations ===

    def list_appellations(self) -> list[AppellationCount]:
        return self.store.list_appellations()

    def rank(
        self,
        wine_filter: Optional[WineFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        unbounded: bool = False,
    ) -> list[RankedWine]:
        return self.ranking.rank(wine_filter, limit=limit, offset=offset, unbounded=unbounded)

    def get_wine(self, wine_id: int) -> Optional[RankedWine]:
        return self.store.get_ranked(wine_id)

    def get_refresh_status(self, now: Optional[datetime] = None) -> RefreshStatus:
        return self.scheduler.refresh_status(now)

    # === Mutating operations ===

    def set_override(self, wine_id: int, adjustment_percent, authorized: bool) -> RankedWine:
        """
        Set the admin adjustment for a wine and return the re-scored wine.

        Raises:
            UnauthorizedError: caller not authorized
            ValidationError: adjustment not a number in [-25, 25]
            NotFoundError: unknown wine id
        """
        self._require_authorized(authorized, "set_override")
        override = self.store.set_override(wine_id, adjustment_percent, self.clock())
        logger.info(f"Override set: wine_id={wine_id} adjustment={override.adjustment_percent:+g}%")

        ranked = self.store.get_ranked(wine_id)
        if ranked is None:
            # Deleted between the write and the read
            raise NotFoundError(f"Wine {wine_id} not found", detail={"wine_id": wine_id})
        return ranked

    def ingest(
        self,
        records: Iterable[RawRecord],
        authorized: bool,
        source_name: str = "upload",
    ) -> IngestionStats:
        """Merge a batch of import records (admin upload)."""
        self._require_authorized(authorized, "ingest")
        return self.pipeline.ingest(records, source_name=source_name)

    def trigger_refresh_now(self, authorized: bool) -> RefreshOutcome:
        """Pull the configured feed immediately, ignoring staleness."""
        self._require_authorized(authorized, "trigger_refresh_now")
        return self.scheduler.trigger_refresh_now()

    def check_refresh(self) -> RefreshOutcome:
        """Periodic due-check entry point."""
        return self.scheduler.check_and_maybe_refresh()

    def seed_if_empty(self, use_demo: bool = True) -> Optional[IngestionStats]:
        """
        Populate an empty catalog from the feed, else from the demo batch.

        Returns:
            IngestionStats, or None if the catalog already had wines or
            there was nothing to seed with
        """
        if self.store.count() > 0:
            return None

        batch = self.feed.fetch_batch()
        source_name = self.feed.get_source_name()
        if not batch and use_demo:
            batch = DEMO_BATCH
            source_name = "demo_seed"
        if not batch:
            logger.info("[seed] Catalog empty and no seed data available")
            return None

        stats = self.pipeline.ingest(batch, source_name=source_name)
        logger.info(f"[seed] Inserted {stats.records_added} wines from {source_name}")
        return stats

    @staticmethod
    def _require_authorized(authorized: bool, action: str) -> None:
        if not authorized:
            logger.warning(f"Rejected unauthorized {action}")
            raise UnauthorizedError(f"{action} requires admin authorization")


# Singleton service instance
_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create catalog service singleton. Use FastAPI Depends() for injection."""
    global _service
    if _service is None:
        _service = CatalogService(CatalogStore())
    return _service


def reset_catalog_service() -> None:
    """Reset the singleton instance (for testing)."""
    global _service
    if _service is not None:
        _service.store.close()
    _service = None
