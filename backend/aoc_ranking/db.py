"""
Database initialization helper.

Provides programmatic Alembic migration runner for:
- CatalogStore initialization
- Test fixtures
- Any code that needs a fully migrated database

This is the single entry point for schema initialization.
All table creation happens through Alembic migrations.

Also provides BaseRepository class for thread-safe SQLite access.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from alembic import command
from alembic.config import Config as AlembicConfig

from .errors import StorageError

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).parent.parent


def ensure_schema(db_path: str) -> None:
    """
    Run Alembic migrations to head for the given database.

    This ensures the database has all tables defined by migrations.
    Safe to call multiple times - Alembic tracks applied migrations.

    Args:
        db_path: Absolute path to the SQLite database file.
                 Parent directory is created if missing.
    """
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    # Configure Alembic programmatically
    alembic_cfg = AlembicConfig(str(BACKEND_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    alembic_cfg.attributes["configure_logger"] = False

    # Suppress Alembic's default logging to avoid noise in tests
    logging.getLogger("alembic").setLevel(logging.WARNING)

    try:
        command.upgrade(alembic_cfg, "head")
        logger.debug(f"Schema initialized for {db_path}")
    except Exception as e:
        logger.error(f"Migration failed for {db_path}: {e}")
        raise


class BaseRepository:
    """
    Base class for thread-safe SQLite repositories.

    Provides common functionality for:
    - Thread-local connection pooling
    - Write transactions (BEGIN IMMEDIATE) with commit/rollback
    - Read snapshots, so a multi-row read never mixes two states
    - WAL mode so readers don't block the writer
    """

    def __init__(self, db_path: Optional[str] = None, use_wal: bool = True):
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database. Defaults to Config.database_path()
            use_wal: Enable WAL mode for better concurrent access
        """
        if db_path is None:
            from .config import Config
            db_path = Config.database_path()

        self.db_path = str(db_path)
        self._local = threading.local()
        self._use_wal = use_wal

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, 'connection') or self._local.connection is None:
            try:
                # isolation_level=None: transactions are opened explicitly below
                conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                if self._use_wal:
                    conn.execute("PRAGMA journal_mode = WAL")
            except sqlite3.Error as e:
                raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
            self._local.connection = conn
        return self._local.connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Write transaction with automatic commit/rollback."""
        with self._begin("BEGIN IMMEDIATE") as cursor:
            yield cursor

    @contextmanager
    def _snapshot(self) -> Iterator[sqlite3.Cursor]:
        """Read transaction: every statement inside sees the same database state."""
        with self._begin("BEGIN") as cursor:
            yield cursor

    @contextmanager
    def _begin(self, statement: str) -> Iterator[sqlite3.Cursor]:
        conn = self._get_connection()
        try:
            conn.execute(statement)
        except sqlite3.Error as e:
            raise StorageError(f"Could not start transaction: {e}") from e

        cursor = conn.cursor()
        try:
            yield cursor
            conn.execute("COMMIT")
        except (sqlite3.Error, OverflowError) as e:
            self._rollback(conn)
            raise StorageError(f"Transaction failed: {e}") from e
        except Exception:
            self._rollback(conn)
            raise

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    def close(self) -> None:
        """Close database connection."""
        if hasattr(self._local, 'connection') and self._local.connection:
            self._local.connection.close()
            self._local.connection = None
