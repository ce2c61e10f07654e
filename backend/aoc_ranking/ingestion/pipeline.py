"""
Wine data ingestion pipeline.

Orchestrates the flow: raw records → normalizer → catalog store

The merge is idempotent (upsert by external_id), never touches admin
overrides, and commits the whole batch together with the refresh stamp.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..clock import as_utc, utc_now
from ..errors import ValidationError
from ..services.catalog_store import CatalogStore
from .normalizers import RawRecord, RecordNormalizer
from .protocols import IngestionStats

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """
    Main ingestion pipeline for wine data.

    Coordinates:
    1. Normalizing every record (coercing numeric fields)
    2. Rejecting the batch if a record lacks name or appellation
    3. Writing the batch and the refresh stamp in one transaction
    """

    def __init__(
        self,
        store: CatalogStore,
        normalizer: Optional[RecordNormalizer] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize pipeline.

        Args:
            store: Catalog store to merge into
            normalizer: Record normalizer (creates default if None)
            clock: Source of the ingestion timestamp
        """
        self.store = store
        self.normalizer = normalizer or RecordNormalizer()
        self.clock = clock

    def ingest(
        self,
        records: Iterable[RawRecord],
        now: Optional[datetime] = None,
        source_name: str = "import",
        dry_run: bool = False,
    ) -> IngestionStats:
        """
        Merge a batch of records into the catalog.

        Args:
            records: Raw or normalized import records
            now: Ingestion timestamp (defaults to the pipeline clock)
            source_name: Label for logs and stats
            dry_run: If True, normalize and validate but don't write

        Returns:
            IngestionStats with results

        Raises:
            ValidationError: a record is missing a required field (nothing written)
            StorageError: the store failed mid-batch (nothing written)
        """
        now = as_utc(now or self.clock())
        stats = IngestionStats(source_name=source_name)

        normalized = []
        errors = []
        for row_number, raw in enumerate(records, start=1):
            stats.records_read += 1
            try:
                record, coerced = self.normalizer.normalize(raw, row_number)
            except ValidationError as e:
                errors.append(e.detail)
                continue
            if coerced:
                stats.records_coerced += 1
                stats.warnings.append(f"Row {record.row_number}: coerced {', '.join(coerced)}")
            normalized.append(record)

        if errors:
            logger.warning(f"[{source_name}] Rejected batch: {len(errors)} record(s) missing required fields")
            raise ValidationError(
                f"{len(errors)} record(s) missing required fields (name, appellation)",
                detail=errors,
            )

        for warning in stats.warnings:
            logger.info(f"[{source_name}] {warning}")

        if dry_run:
            stats.records_upserted = len(normalized)
            return stats

        inserted, updated = self.store.ingest_batch(normalized, now)
        stats.records_upserted = inserted + updated
        stats.records_added = inserted
        stats.records_updated = updated

        logger.info(
            f"[{source_name}] Upserted {stats.records_upserted} wines "
            f"({inserted} new, {updated} updated, {stats.records_coerced} coerced)"
        )
        return stats

    def preview(self, records: Iterable[RawRecord], limit: int = 10) -> list[dict]:
        """
        Preview normalized records without writing.

        Args:
            records: Raw records
            limit: Max records to return

        Returns:
            List of normalized record dicts (invalid rows carry an 'error' key)
        """
        results = []
        for row_number, raw in enumerate(records, start=1):
            if row_number > limit:
                break
            try:
                record, coerced = self.normalizer.normalize(raw, row_number)
            except ValidationError as e:
                results.append({"row_number": row_number, "error": e.message})
                continue

            results.append({
                "row_number": record.row_number,
                "external_id": record.external_id,
                "name": record.name,
                "producer": record.producer,
                "appellation": record.appellation,
                "vintage": record.vintage,
                "base_score": record.base_score,
                "review_count": record.review_count,
                "price": record.price,
                "coerced": coerced,
            })

        return results
