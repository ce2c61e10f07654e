#!/usr/bin/env python3
"""
Wine catalog ingestion CLI tool.

Usage:
    python scripts/ingest.py --file export.csv          # Upsert wines from a CSV/JSON export
    python scripts/ingest.py --file export.json --dry-run
    python scripts/ingest.py --preview export.csv       # Preview first 10 normalized records
    python scripts/ingest.py --stats                    # Show catalog statistics
    python scripts/ingest.py --check-refresh            # Run the 75-day due-check once
    python scripts/ingest.py --refresh-now              # Refresh from the seed file now
"""

import argparse
import sys
import time
from pathlib import Path

# Add backend to path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from aoc_ranking.config import Config
from aoc_ranking.db import ensure_schema
from aoc_ranking.errors import CatalogError
from aoc_ranking.ingestion.adapters.upload_parser import RecordParser
from aoc_ranking.services.catalog_service import CatalogService
from aoc_ranking.services.catalog_store import CatalogStore


def open_service() -> CatalogService:
    """Migrate the configured database and wrap it in a service."""
    db_path = Config.database_path()
    ensure_schema(db_path)
    return CatalogService(CatalogStore(db_path))


def read_records(path: str, fmt: str = None) -> list[dict]:
    """Parse a CSV/JSON export from disk."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    parser = RecordParser()
    return parser.parse(file_path.read_bytes(), filename=file_path.name, fmt=fmt)


def ingest_file(path: str, fmt: str = None, dry_run: bool = False) -> dict:
    """Ingest a single export file."""
    print(f"\n{'='*60}")
    print(f"Ingesting: {path}{' (dry run)' if dry_run else ''}")
    print(f"{'='*60}")

    service = open_service()
    records = read_records(path, fmt)

    start_time = time.time()
    stats = service.pipeline.ingest(records, source_name=Path(path).name, dry_run=dry_run)
    elapsed = time.time() - start_time

    print(f"\nCompleted in {elapsed:.1f}s")
    print(f"  Records read: {stats.records_read:,}")
    print(f"  Records upserted: {stats.records_upserted:,}")
    print(f"  New wines: {stats.records_added:,}")
    print(f"  Updated wines: {stats.records_updated:,}")
    print(f"  Coerced: {stats.records_coerced:,}")

    if stats.warnings:
        print(f"  Warnings: {len(stats.warnings)}")
        for warning in stats.warnings[:5]:
            print(f"    - {warning}")
        if len(stats.warnings) > 5:
            print(f"    ... and {len(stats.warnings) - 5} more")

    service.store.close()
    return stats.to_dict()


def show_stats():
    """Show catalog statistics."""
    print("\n" + "="*60)
    print("Wine Catalog Statistics")
    print("="*60)

    service = open_service()
    print(f"\nTotal wines: {service.store.count():,}")

    print("\nWines per appellation:")
    for entry in service.list_appellations():
        print(f"  {entry.appellation}: {entry.count:,}")

    print("\nTop 5 overall:")
    for i, ranked in enumerate(service.rank(limit=5), 1):
        marker = f" ({ranked.adjustment_percent:+g}%)" if ranked.has_override else ""
        print(f"  {i}. {ranked.wine.name} [{ranked.wine.appellation}] {ranked.effective_score:.2f}{marker}")

    status = service.get_refresh_status()
    print("\nRefresh:")
    print(f"  Last refresh: {status.last_refresh_at.isoformat() if status.last_refresh_at else 'never'}")
    if status.next_refresh_due:
        print(f"  Next due: {status.next_refresh_due.isoformat()}")
    print(f"  Due now: {'yes' if status.is_due else 'no'}")

    service.store.close()


def preview_file(path: str, fmt: str = None, limit: int = 10):
    """Preview normalized records from an export file."""
    print(f"\nPreview: {path} (first {limit} records)")
    print("="*60)

    service = open_service()
    records = service.pipeline.preview(read_records(path, fmt), limit=limit)

    for record in records:
        if "error" in record:
            print(f"\nRow {record['row_number']}: ERROR {record['error']}")
            continue
        print(f"\nRow {record['row_number']}. {record['name']} ({record.get('vintage') or 'NV'})")
        print(f"   Appellation: {record['appellation']}")
        print(f"   Producer: {record.get('producer') or 'N/A'}")
        print(f"   Score: {record['base_score']} from {record['review_count']:,} reviews")
        print(f"   Price: {record['price'] if record['price'] is not None else 'N/A'}")
        if record["coerced"]:
            print(f"   Coerced: {', '.join(record['coerced'])}")

    service.store.close()


def run_refresh(force: bool):
    """Run the due-check (or a forced refresh) once."""
    service = open_service()
    if force:
        outcome = service.trigger_refresh_now(authorized=True)
    else:
        outcome = service.check_refresh()

    print(f"\nRefresh: {outcome.reason}")
    if outcome.days_since_refresh is not None:
        print(f"  Days since last refresh: {outcome.days_since_refresh}")
    if outcome.stats:
        print(f"  Records upserted: {outcome.stats.records_upserted:,}")

    service.store.close()


def main():
    parser = argparse.ArgumentParser(
        description="Wine catalog ingestion CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--file", "-f",
        help="CSV or JSON export to ingest"
    )
    parser.add_argument(
        "--format",
        choices=Config.ALLOWED_IMPORT_FORMATS,
        help="Force the input format (default: from file extension)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and count without writing"
    )
    parser.add_argument(
        "--preview", "-p",
        metavar="FILE",
        help="Preview normalized records from a file"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show catalog statistics"
    )
    parser.add_argument(
        "--check-refresh",
        action="store_true",
        help="Refresh from the seed file if the catalog is stale"
    )
    parser.add_argument(
        "--refresh-now",
        action="store_true",
        help="Refresh from the seed file regardless of staleness"
    )

    args = parser.parse_args()

    try:
        if args.preview:
            preview_file(args.preview, args.format)
            return

        if args.stats:
            show_stats()
            return

        if args.check_refresh or args.refresh_now:
            run_refresh(force=args.refresh_now)
            return

        if args.file:
            ingest_file(args.file, args.format, dry_run=args.dry_run)
            if not args.dry_run:
                show_stats()
            return
    except (CatalogError, FileNotFoundError) as e:
        print(f"\nError: {e}")
        detail = getattr(e, "detail", None)
        if detail:
            print(f"  Detail: {detail}")
        sys.exit(1)

    # Default: show help
    parser.print_help()


if __name__ == "__main__":
    main()
