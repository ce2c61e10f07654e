"""
Source adapters for wine ingestion.

Each adapter turns an external format into raw records keyed by
canonical field names.
"""

from .upload_parser import RecordParser
from .seed_feed import SeedFileFeed, DEMO_BATCH

__all__ = ["RecordParser", "SeedFileFeed", "DEMO_BATCH"]
