"""
Wine data ingestion package.

Provides the pipeline that merges source batches into the catalog
while leaving admin overrides untouched.
"""

from .protocols import FeedSource, IngestionStats
from .normalizers import RecordNormalizer, fallback_external_id
from .pipeline import IngestionPipeline

__all__ = [
    "FeedSource",
    "IngestionStats",
    "RecordNormalizer",
    "fallback_external_id",
    "IngestionPipeline",
]
