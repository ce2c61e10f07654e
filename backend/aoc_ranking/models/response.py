"""
Pydantic models for the AOC ranking API.

API Contract:
GET /api/wines
[
  {
    "id": 12,
    "external_id": "vivino-1138",
    "name": "Château Pontet-Canet",
    "producer": "Pontet-Canet",
    "appellation": "Pauillac",
    "vintage": 2016,
    "base_score": 4.5,
    "adjustment_percent": 10.0,
    "effective_score": 4.95,
    "review_count": 2100,
    "price": 120.0
  }
]
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .catalog import RankedWine


class RankedWineResponse(BaseModel):
    """A catalog wine with its admin adjustment and effective score."""
    rank: Optional[int] = Field(None, description="1-based position in the returned window")
    id: int = Field(..., description="Store-assigned wine id")
    external_id: str = Field(..., description="Source key used for upserts")
    name: str
    producer: Optional[str] = Field(None, description="Château, domaine or estate")
    appellation: str = Field(..., description="AOC the wine is ranked in")
    vintage: Optional[int] = None
    base_score: float = Field(..., description="Unadjusted source rating")
    adjustment_percent: float = Field(0.0, description="Admin adjustment, -25..25")
    effective_score: float = Field(..., description="Base score after adjustment")
    review_count: int = 0
    price: Optional[float] = None
    source_updated_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_ranked(cls, ranked: RankedWine, rank: Optional[int] = None) -> "RankedWineResponse":
        wine = ranked.wine
        return cls(
            rank=rank,
            id=wine.id,
            external_id=wine.external_id,
            name=wine.name,
            producer=wine.producer,
            appellation=wine.appellation,
            vintage=wine.vintage,
            base_score=wine.base_score,
            adjustment_percent=ranked.adjustment_percent,
            effective_score=round(ranked.effective_score, 4),
            review_count=wine.review_count,
            price=wine.price,
            source_updated_at=wine.source_updated_at,
            updated_at=wine.updated_at,
        )


class AppellationResponse(BaseModel):
    """An appellation with its wine count."""
    appellation: str
    count: int


class RefreshStatusResponse(BaseModel):
    """Staleness of the catalog relative to the refresh threshold."""
    last_refresh: Optional[datetime] = None
    next_refresh_due: Optional[datetime] = None
    days_since_refresh: Optional[int] = None
    threshold_days: int
    is_due: bool


class OverrideRequest(BaseModel):
    """Admin score adjustment. Range is checked by the engine, not here."""
    wine_id: int = Field(..., description="Store id of the wine")
    adjustment_percent: float = Field(..., description="Adjustment in percent, -25..25")


class OverrideResponse(BaseModel):
    """Result of an override write."""
    ok: bool = True
    wine: RankedWineResponse


class ImportResponse(BaseModel):
    """Result of an uploaded CSV/JSON import."""
    ok: bool = True
    upserted: int
    inserted: int = 0
    updated: int = 0
    coerced: int = 0


class RefreshResponse(BaseModel):
    """Result of a manual refresh."""
    ok: bool = True
    refreshed: bool
    reason: str
    upserted: int = 0
