"""
Domain records for the wine catalog.

Source data (WineRecord) and admin judgment (OverrideRecord) are kept
as separate records; RankedWine is the read-time join of the two.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class WineRecord:
    """A wine as last delivered by the source feed."""
    id: int
    external_id: str
    name: str
    appellation: str
    base_score: float
    producer: Optional[str] = None
    vintage: Optional[int] = None
    review_count: int = 0
    price: Optional[float] = None
    source_updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class OverrideRecord:
    """Admin adjustment for one wine. A missing override means 0%."""
    wine_id: int
    adjustment_percent: float
    updated_at: Optional[datetime] = None


@dataclass
class RankedWine:
    """A wine joined with its override and the derived effective score."""
    wine: WineRecord
    adjustment_percent: float
    effective_score: float
    has_override: bool = False


@dataclass(frozen=True)
class WineFilter:
    """
    Predicates for catalog queries.

    Score bounds are inclusive and apply to the effective score,
    i.e. after the override has been applied.
    """
    appellation: Optional[str] = None
    query: Optional[str] = None
    min_score: Optional[float] = None
    max_score: Optional[float] = None

    def __post_init__(self):
        # Blank form fields mean "no filter"
        if self.appellation is not None and not self.appellation.strip():
            object.__setattr__(self, "appellation", None)
        if self.query is not None and not self.query.strip():
            object.__setattr__(self, "query", None)


@dataclass
class AppellationCount:
    """An appellation and how many wines it holds."""
    appellation: str
    count: int


@dataclass
class ImportRecord:
    """
    A normalized record handed to the ingestion pipeline.

    Produced by the upload parser or a source feed; numeric fields
    have already been coerced to safe values.
    """
    external_id: str
    name: str
    appellation: str
    base_score: float
    producer: Optional[str] = None
    vintage: Optional[int] = None
    review_count: int = 0
    price: Optional[float] = None

    # For tracking
    row_number: Optional[int] = None
