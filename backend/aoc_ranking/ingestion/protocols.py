"""
Protocols and data classes for wine ingestion.

Defines the interface that source feeds must implement.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence


class FeedSource(Protocol):
    """
    Protocol for source feeds used by the refresh scheduler.

    A feed hands over the next source snapshot as raw records keyed by
    canonical field names (name, appellation, base_score, ...).
    """

    def fetch_batch(self) -> Optional[Sequence[Mapping[str, Any]]]:
        """
        Get the next batch of records.

        Returns:
            Records, or None when the source has no data available
        """
        ...

    def get_source_name(self) -> str:
        """
        Get the unique identifier for this source.

        Returns:
            Source name (e.g., 'seed_file', 'upload')
        """
        ...


@dataclass
class IngestionStats:
    """Statistics from an ingestion run."""
    source_name: str
    records_read: int = 0
    records_upserted: int = 0
    records_added: int = 0
    records_updated: int = 0
    records_coerced: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/storage."""
        return {
            "source_name": self.source_name,
            "records_read": self.records_read,
            "records_upserted": self.records_upserted,
            "records_added": self.records_added,
            "records_updated": self.records_updated,
            "records_coerced": self.records_coerced,
            "warning_count": len(self.warnings),
        }
