"""Initial schema - wine catalog, admin overrides, refresh metadata.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

Creates core tables: wines, admin_overrides, meta.

The effective (adjusted) score is not a column: it is
derived at read time from wines.base_score and the override.
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Schema SQL inlined for immutability.
SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS wines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        external_id TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        producer TEXT,
        appellation TEXT NOT NULL,
        vintage INTEGER,
        base_score REAL NOT NULL,
        review_count INTEGER NOT NULL DEFAULT 0 CHECK (review_count >= 0),
        price REAL CHECK (price IS NULL OR price >= 0),
        source_updated_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS admin_overrides (
        wine_id INTEGER PRIMARY KEY,
        adjustment_percent REAL NOT NULL DEFAULT 0
            CHECK (adjustment_percent BETWEEN -25 AND 25),
        updated_at TEXT NOT NULL,
        FOREIGN KEY (wine_id) REFERENCES wines(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        value TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_wines_appellation ON wines(appellation)",
]


def upgrade() -> None:
    for statement in SCHEMA_STATEMENTS:
        op.execute(statement)


def downgrade() -> None:
    # Drop tables in reverse dependency order
    for table in ("meta", "admin_overrides", "wines"):
        op.execute(f"DROP TABLE IF EXISTS {table}")
