"""
Ranking engine.

Orders catalog wines by effective score with deterministic tie-breaks
and applies the "Top 20 per appellation / Top 100 global" windows.
"""

import logging
from typing import Optional

from ..config import Config
from ..models.catalog import RankedWine, WineFilter
from .catalog_store import CatalogStore

logger = logging.getLogger(__name__)


def ranking_key(ranked: RankedWine) -> tuple:
    """
    Total order for rankings:
    1. effective score, descending
    2. review count, descending (more reviews = more confidence)
    3. price ascending, missing price last
    4. store id ascending, so equal wines always come out the same way
    """
    price = ranked.wine.price
    return (
        -ranked.effective_score,
        -(ranked.wine.review_count or 0),
        price is None,
        price if price is not None else 0.0,
        ranked.wine.id,
    )


def default_limit(wine_filter: WineFilter) -> int:
    """Top 20 inside an appellation, top 100 across the whole catalog."""
    if wine_filter.appellation:
        return Config.APPELLATION_TOP_N
    return Config.GLOBAL_TOP_N


class RankingEngine:
    """Read-only ranking over a fresh store snapshot per call."""

    def __init__(self, store: CatalogStore):
        self.store = store

    def rank(
        self,
        wine_filter: Optional[WineFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        unbounded: bool = False,
    ) -> list[RankedWine]:
        """
        Rank wines matching the filter.

        Args:
            wine_filter: Appellation, text query and effective-score bounds
            limit: Window size; None applies the default window (20 or 100)
            offset: Ranked entries to skip
            unbounded: Return everything past offset, ignoring limit

        Returns:
            Wines in ranking order
        """
        wine_filter = wine_filter or WineFilter()
        if unbounded:
            window = None
        elif limit is None:
            window = default_limit(wine_filter)
        else:
            window = max(0, limit)

        results = self.store.query_wines(
            wine_filter,
            order=ranking_key,
            limit=window,
            offset=max(0, offset),
        )
        logger.debug(
            f"Ranked {len(results)} wines "
            f"(appellation={wine_filter.appellation!r}, window={window}, offset={offset})"
        )
        return results
