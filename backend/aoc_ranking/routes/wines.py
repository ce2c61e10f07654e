"""
Public read endpoints: appellations, rankings, refresh status.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..models import (
    AppellationResponse,
    RankedWineResponse,
    RefreshStatusResponse,
    WineFilter,
)
from ..services.catalog_service import CatalogService, get_catalog_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/appellations", response_model=list[AppellationResponse])
async def list_appellations(
    service: CatalogService = Depends(get_catalog_service),
) -> list[AppellationResponse]:
    """Distinct appellations with wine counts, sorted by name."""
    return [
        AppellationResponse(appellation=a.appellation, count=a.count)
        for a in service.list_appellations()
    ]


@router.get("/api/wines", response_model=list[RankedWineResponse])
async def list_wines(
    appellation: Optional[str] = Query(None, description="Exact appellation (AOC) match"),
    q: Optional[str] = Query(None, description="Substring of wine name or producer"),
    min_score: Optional[float] = Query(None, description="Inclusive lower bound on effective score"),
    max_score: Optional[float] = Query(None, description="Inclusive upper bound on effective score"),
    limit: Optional[int] = Query(None, ge=0, description="Window size (default 20 per appellation, 100 global)"),
    offset: int = Query(0, ge=0, description="Ranked entries to skip"),
    all: bool = Query(False, description="Return every match, ignoring limit"),
    service: CatalogService = Depends(get_catalog_service),
) -> list[RankedWineResponse]:
    """
    Ranked wines.

    With an appellation this is the "Top 20" for that AOC; without one it
    is the global top 100. Sorted by effective score, then review count,
    then price (missing prices last).
    """
    wine_filter = WineFilter(appellation=appellation, query=q, min_score=min_score, max_score=max_score)
    ranked = service.rank(wine_filter, limit=limit, offset=offset, unbounded=all)
    return [
        RankedWineResponse.from_ranked(r, rank=offset + i + 1)
        for i, r in enumerate(ranked)
    ]


@router.get("/api/wines/{wine_id}", response_model=RankedWineResponse)
async def get_wine(
    wine_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> RankedWineResponse:
    """One wine with its adjustment and effective score."""
    ranked = service.get_wine(wine_id)
    if ranked is None:
        raise HTTPException(status_code=404, detail="Wine not found")
    return RankedWineResponse.from_ranked(ranked)


@router.get("/api/meta", response_model=RefreshStatusResponse)
async def refresh_meta(
    service: CatalogService = Depends(get_catalog_service),
) -> RefreshStatusResponse:
    """Last refresh and when the next one is due."""
    status = service.get_refresh_status()
    return RefreshStatusResponse(
        last_refresh=status.last_refresh_at,
        next_refresh_due=status.next_refresh_due,
        days_since_refresh=status.days_since_refresh,
        threshold_days=status.threshold_days,
        is_due=status.is_due,
    )
