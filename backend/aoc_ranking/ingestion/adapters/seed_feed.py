"""
Seed-file feed.

Reads a JSON export from disk. This is the source the refresh scheduler
uses: ratings are never scraped, operators drop a fresh export in place
of the seed file and the next due-check picks it up.
"""

import logging
from pathlib import Path
from typing import Optional

from .upload_parser import RecordParser

logger = logging.getLogger(__name__)


# Minimal inline batch for empty installations without a seed file
DEMO_BATCH: list[dict] = [
    {"external_id": "demo-1", "name": "Château Demo 1", "producer": "Demo Estate",
     "appellation": "Saint-Estèphe", "vintage": 2018, "base_score": 4.2,
     "review_count": 1200, "price": 35.0},
    {"external_id": "demo-2", "name": "Château Demo 2", "producer": "Demo Estate",
     "appellation": "Pauillac", "vintage": 2019, "base_score": 4.5,
     "review_count": 980, "price": 75.0},
    {"external_id": "demo-3", "name": "Château Demo 3", "producer": "Demo Estate",
     "appellation": "Margaux", "vintage": 2020, "base_score": 4.0,
     "review_count": 450, "price": 52.0},
    {"external_id": "demo-4", "name": "Château Demo 4", "producer": "Demo Estate",
     "appellation": "Saint-Julien", "vintage": 2016, "base_score": 4.3,
     "review_count": 2100, "price": 60.0},
    {"external_id": "demo-5", "name": "Château Demo 5", "producer": "Demo Estate",
     "appellation": "Pessac-Léognan", "vintage": 2017, "base_score": 4.1,
     "review_count": 800, "price": 40.0},
]


class SeedFileFeed:
    """Feed backed by a JSON export on disk."""

    def __init__(self, path: Optional[str] = None, parser: Optional[RecordParser] = None):
        if path is None:
            from ...config import Config
            path = Config.data_seed_path()
        self.path = Path(path)
        self.parser = parser or RecordParser()

    def get_source_name(self) -> str:
        return "seed_file"

    def fetch_batch(self) -> Optional[list[dict]]:
        """
        Read the seed file.

        Returns:
            Raw records, or None when the file does not exist

        Raises:
            ValidationError: the file exists but is not a valid export
        """
        if not self.path.exists():
            logger.info(f"Seed file not found: {self.path}")
            return None

        records = self.parser.parse_json(self.path.read_text(encoding="utf-8"))
        logger.debug(f"Read {len(records)} records from {self.path}")
        return records
