"""
Refresh scheduler.

Decides when the catalog is stale and pulls the next source batch
through the ingestion pipeline. The decision depends only on the
last_refresh stamp in the store and the `now` passed in, so the
due-check can be called as often as convenient.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..clock import as_utc, utc_now
from ..config import Config
from ..ingestion.pipeline import IngestionPipeline
from ..ingestion.protocols import FeedSource, IngestionStats
from .catalog_store import CatalogStore

logger = logging.getLogger(__name__)

NOT_DUE = "not_due"
NO_DATA = "no_data"
REFRESHED = "refreshed"


@dataclass
class RefreshOutcome:
    """What a due-check or manual refresh did."""
    refreshed: bool
    reason: str
    days_since_refresh: Optional[int] = None
    stats: Optional[IngestionStats] = None


@dataclass
class RefreshStatus:
    """Staleness of the catalog at a point in time."""
    last_refresh_at: Optional[datetime]
    next_refresh_due: Optional[datetime]
    days_since_refresh: Optional[int]
    threshold_days: int
    is_due: bool


def days_since(last_refresh_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed, None when there never was a refresh."""
    if last_refresh_at is None:
        return None
    return (as_utc(now) - as_utc(last_refresh_at)).days


class RefreshScheduler:
    """
    Staleness-driven refresh.

    Overlapping calls are serialized by a lock: the second caller waits,
    then sees the stamp the first one wrote and finds nothing to do.
    """

    def __init__(
        self,
        store: CatalogStore,
        pipeline: IngestionPipeline,
        feed: FeedSource,
        threshold_days: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.pipeline = pipeline
        self.feed = feed
        self.threshold_days = threshold_days if threshold_days is not None else Config.refresh_threshold_days()
        self.clock = clock
        self._lock = threading.Lock()

    def check_and_maybe_refresh(self, now: Optional[datetime] = None) -> RefreshOutcome:
        """
        Refresh if at least threshold_days have passed since the last ingestion.

        A missing stamp counts as infinitely stale. If the feed has no data
        the stamp is left alone so the next check retries.
        """
        with self._lock:
            now = as_utc(now or self.clock())
            elapsed = days_since(self.store.get_refresh_meta(), now)

            if elapsed is not None and elapsed < self.threshold_days:
                logger.info(f"[refresh] {elapsed} days since last refresh, not due yet")
                return RefreshOutcome(refreshed=False, reason=NOT_DUE, days_since_refresh=elapsed)

            if elapsed is None:
                logger.info("[refresh] No previous refresh, running ingestion")
            else:
                logger.info(f"[refresh] {elapsed} days since last refresh, running ingestion")
            return self._refresh(now, elapsed)

    def trigger_refresh_now(self, now: Optional[datetime] = None) -> RefreshOutcome:
        """Refresh regardless of staleness (admin action)."""
        with self._lock:
            now = as_utc(now or self.clock())
            elapsed = days_since(self.store.get_refresh_meta(), now)
            logger.info("[refresh] Manual refresh requested")
            return self._refresh(now, elapsed)

    def _refresh(self, now: datetime, elapsed: Optional[int]) -> RefreshOutcome:
        batch = self.feed.fetch_batch()
        if not batch:
            logger.info(f"[refresh] No data from {self.feed.get_source_name()}, skipping")
            return RefreshOutcome(refreshed=False, reason=NO_DATA, days_since_refresh=elapsed)

        stats = self.pipeline.ingest(batch, now=now, source_name=self.feed.get_source_name())
        return RefreshOutcome(
            refreshed=True,
            reason=REFRESHED,
            days_since_refresh=elapsed,
            stats=stats,
        )

    def refresh_status(self, now: Optional[datetime] = None) -> RefreshStatus:
        """Last refresh, next due date and whether a refresh is due at `now`."""
        now = as_utc(now or self.clock())
        last = self.store.get_refresh_meta()
        elapsed = days_since(last, now)
        return RefreshStatus(
            last_refresh_at=last,
            next_refresh_due=last + timedelta(days=self.threshold_days) if last else None,
            days_since_refresh=elapsed,
            threshold_days=self.threshold_days,
            is_due=elapsed is None or elapsed >= self.threshold_days,
        )

    async def run_periodic(self, interval_seconds: Optional[float] = None) -> None:
        """
        Run the due-check forever, every interval_seconds.

        Started from the app lifespan; cancel the task to stop it. A failed
        check is logged and retried on the next tick.
        """
        interval = interval_seconds or Config.refresh_check_interval_seconds()
        logger.info(f"[refresh] Periodic due-check every {interval:.0f}s (threshold {self.threshold_days} days)")
        while True:
            try:
                await asyncio.to_thread(self.check_and_maybe_refresh)
            except Exception as e:
                logger.error(f"[refresh] Check failed: {e}", exc_info=True)
            await asyncio.sleep(interval)
