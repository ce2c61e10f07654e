"""
Catalog store with SQLite backend.

Owns the three persistent kinds of data:
- wines: source-derived records, upserted by external_id
- admin_overrides: at most one adjustment per wine
- meta: process-wide register (last refresh timestamp)

Every multi-row read runs inside a snapshot and every write inside an
immediate transaction, so readers never see a half-applied batch.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..db import BaseRepository
from ..errors import NotFoundError
from ..models.catalog import (
    AppellationCount,
    ImportRecord,
    OverrideRecord,
    RankedWine,
    WineFilter,
    WineRecord,
)
from .override_policy import effective_score, validate_adjustment

logger = logging.getLogger(__name__)

LAST_REFRESH_KEY = "last_refresh"

_WINE_COLUMNS = """
    w.id, w.external_id, w.name, w.producer, w.appellation, w.vintage,
    w.base_score, w.review_count, w.price, w.source_updated_at,
    w.created_at, w.updated_at
"""


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class CatalogStore(BaseRepository):
    """
    Thread-safe SQLite store for the wine catalog.

    Features:
    - Upsert by external_id that never touches overrides
    - Override writes guarded by wine existence
    - Joined reads with the effective score derived in Python
    - Atomic batch ingestion including the refresh stamp
    """

    # === Wines ===

    def upsert_wine(self, record: ImportRecord, now: datetime) -> tuple[int, bool]:
        """
        Insert or update a wine keyed by external_id.

        Returns:
            Tuple of (wine_id, is_new)
        """
        with self._transaction() as cursor:
            return self._upsert(cursor, record, now)

    def ingest_batch(self, records: Iterable[ImportRecord], now: datetime) -> tuple[int, int]:
        """
        Upsert a whole batch and stamp last_refresh in one transaction.

        Either every record is applied and the stamp moves to `now`,
        or nothing changes.

        Returns:
            Tuple of (inserted_count, updated_count)
        """
        inserted = 0
        updated = 0
        with self._transaction() as cursor:
            for record in records:
                _, is_new = self._upsert(cursor, record, now)
                if is_new:
                    inserted += 1
                else:
                    updated += 1
            self._set_meta(cursor, LAST_REFRESH_KEY, now.isoformat())
        return inserted, updated

    def _upsert(self, cursor: sqlite3.Cursor, record: ImportRecord, now: datetime) -> tuple[int, bool]:
        stamp = now.isoformat()
        cursor.execute("SELECT id FROM wines WHERE external_id = ?", (record.external_id,))
        row = cursor.fetchone()

        if row:
            cursor.execute("""
                UPDATE wines
                SET name = ?, producer = ?, appellation = ?, vintage = ?,
                    base_score = ?, review_count = ?, price = ?,
                    source_updated_at = ?, updated_at = ?
                WHERE id = ?
            """, (
                record.name,
                record.producer,
                record.appellation,
                record.vintage,
                record.base_score,
                record.review_count,
                record.price,
                stamp,
                stamp,
                row['id'],
            ))
            return row['id'], False

        cursor.execute("""
            INSERT INTO wines (external_id, name, producer, appellation, vintage,
                               base_score, review_count, price,
                               source_updated_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            record.external_id,
            record.name,
            record.producer,
            record.appellation,
            record.vintage,
            record.base_score,
            record.review_count,
            record.price,
            stamp,
            stamp,
            stamp,
        ))
        return cursor.lastrowid, True

    def get_wine(self, wine_id: int) -> Optional[WineRecord]:
        """Find wine by store id. None if absent."""
        with self._snapshot() as cursor:
            cursor.execute(f"SELECT {_WINE_COLUMNS} FROM wines w WHERE w.id = ?", (wine_id,))
            row = cursor.fetchone()
        return self._row_to_wine(row) if row else None

    def get_wine_by_external_id(self, external_id: str) -> Optional[WineRecord]:
        """Find wine by source key. None if absent."""
        with self._snapshot() as cursor:
            cursor.execute(f"SELECT {_WINE_COLUMNS} FROM wines w WHERE w.external_id = ?", (external_id,))
            row = cursor.fetchone()
        return self._row_to_wine(row) if row else None

    def get_ranked(self, wine_id: int) -> Optional[RankedWine]:
        """Single wine joined with its override."""
        with self._snapshot() as cursor:
            cursor.execute(f"""
                SELECT {_WINE_COLUMNS}, o.adjustment_percent
                FROM wines w
                LEFT JOIN admin_overrides o ON o.wine_id = w.id
                WHERE w.id = ?
            """, (wine_id,))
            row = cursor.fetchone()
        return self._row_to_ranked(row) if row else None

    def delete_wine(self, wine_id: int) -> bool:
        """Delete a wine (its override goes with it). Returns True if deleted."""
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM wines WHERE id = ?", (wine_id,))
            return cursor.rowcount > 0

    def count(self) -> int:
        """Get total wine count."""
        with self._snapshot() as cursor:
            cursor.execute("SELECT COUNT(*) FROM wines")
            return cursor.fetchone()[0]

    # === Overrides ===

    def set_override(self, wine_id: int, adjustment_percent: float, now: datetime) -> OverrideRecord:
        """
        Create or replace the adjustment for a wine.

        Raises:
            ValidationError: adjustment outside [-25, 25]
            NotFoundError: wine_id does not reference a wine
        """
        pct = validate_adjustment(adjustment_percent)
        stamp = now.isoformat()

        with self._transaction() as cursor:
            cursor.execute("SELECT 1 FROM wines WHERE id = ?", (wine_id,))
            if cursor.fetchone() is None:
                raise NotFoundError(f"Wine {wine_id} not found", detail={"wine_id": wine_id})

            cursor.execute("""
                INSERT INTO admin_overrides (wine_id, adjustment_percent, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(wine_id) DO UPDATE SET
                    adjustment_percent = excluded.adjustment_percent,
                    updated_at = excluded.updated_at
            """, (wine_id, pct, stamp))

        return OverrideRecord(wine_id=wine_id, adjustment_percent=pct, updated_at=now)

    def get_override(self, wine_id: int) -> Optional[OverrideRecord]:
        """Get the adjustment for a wine. None means 0%."""
        with self._snapshot() as cursor:
            cursor.execute("""
                SELECT wine_id, adjustment_percent, updated_at
                FROM admin_overrides WHERE wine_id = ?
            """, (wine_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return OverrideRecord(
            wine_id=row['wine_id'],
            adjustment_percent=row['adjustment_percent'],
            updated_at=_parse_ts(row['updated_at']),
        )

    # === Queries ===

    def query_wines(
        self,
        wine_filter: Optional[WineFilter] = None,
        order: Optional[Callable[[RankedWine], tuple]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[RankedWine]:
        """
        Wines joined with their overrides, filtered, ordered and windowed.

        Args:
            wine_filter: Predicates; score bounds apply to the effective score
            order: Sort key for RankedWine (defaults to store id)
            limit: Max results, None for all
            offset: Results to skip after ordering
        """
        wine_filter = wine_filter or WineFilter()

        sql = f"""
            SELECT {_WINE_COLUMNS}, o.adjustment_percent
            FROM wines w
            LEFT JOIN admin_overrides o ON o.wine_id = w.id
        """
        params: list = []
        if wine_filter.appellation:
            sql += " WHERE w.appellation = ?"
            params.append(wine_filter.appellation)

        with self._snapshot() as cursor:
            cursor.execute(sql, params)
            rows = cursor.fetchall()

        results = [self._row_to_ranked(row) for row in rows]
        results = [r for r in results if self._matches(r, wine_filter)]
        results.sort(key=order or (lambda r: r.wine.id))

        if offset:
            results = results[offset:]
        if limit is not None:
            results = results[:limit]
        return results

    @staticmethod
    def _matches(ranked: RankedWine, wine_filter: WineFilter) -> bool:
        """Text and effective-score predicates (casefold handles accented names)."""
        if wine_filter.query:
            needle = wine_filter.query.strip().casefold()
            haystacks = (ranked.wine.name or "", ranked.wine.producer or "")
            if not any(needle in h.casefold() for h in haystacks):
                return False
        if wine_filter.min_score is not None and ranked.effective_score < wine_filter.min_score:
            return False
        if wine_filter.max_score is not None and ranked.effective_score > wine_filter.max_score:
            return False
        return True

    def list_appellations(self) -> list[AppellationCount]:
        """Distinct appellations with wine counts, ascending by name."""
        with self._snapshot() as cursor:
            cursor.execute("""
                SELECT appellation, COUNT(*) AS n
                FROM wines
                GROUP BY appellation
                ORDER BY appellation
            """)
            return [AppellationCount(appellation=row['appellation'], count=row['n'])
                    for row in cursor.fetchall()]

    # === Refresh metadata ===

    def get_refresh_meta(self) -> Optional[datetime]:
        """Timestamp of the last successful ingestion, None before the first one."""
        with self._snapshot() as cursor:
            cursor.execute("SELECT value FROM meta WHERE key = ?", (LAST_REFRESH_KEY,))
            row = cursor.fetchone()
        return _parse_ts(row['value']) if row else None

    def set_refresh_meta(self, timestamp: datetime) -> None:
        """Record a successful ingestion."""
        with self._transaction() as cursor:
            self._set_meta(cursor, LAST_REFRESH_KEY, timestamp.isoformat())

    @staticmethod
    def _set_meta(cursor: sqlite3.Cursor, key: str, value: str) -> None:
        cursor.execute("""
            INSERT INTO meta (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """, (key, value))

    # === Row mapping ===

    @staticmethod
    def _row_to_wine(row: sqlite3.Row) -> WineRecord:
        """Convert database row to WineRecord."""
        return WineRecord(
            id=row['id'],
            external_id=row['external_id'],
            name=row['name'],
            producer=row['producer'],
            appellation=row['appellation'],
            vintage=row['vintage'],
            base_score=row['base_score'],
            review_count=row['review_count'],
            price=row['price'],
            source_updated_at=_parse_ts(row['source_updated_at']),
            created_at=_parse_ts(row['created_at']),
            updated_at=_parse_ts(row['updated_at']),
        )

    def _row_to_ranked(self, row: sqlite3.Row) -> RankedWine:
        """Convert joined row to RankedWine, deriving the effective score."""
        wine = self._row_to_wine(row)
        has_override = row['adjustment_percent'] is not None
        pct = row['adjustment_percent'] if has_override else 0.0
        return RankedWine(
            wine=wine,
            adjustment_percent=pct,
            effective_score=effective_score(wine.base_score, pct),
            has_override=has_override,
        )
