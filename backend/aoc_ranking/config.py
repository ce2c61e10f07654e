"""
Centralized configuration for the Bordeaux AOC ranking backend.

All constants are defined here to avoid scattered magic numbers
and enable easy configuration management.
"""

import os
from pathlib import Path
from typing import List


class Config:
    """Application configuration constants."""

    # === Override Policy ===
    # Admin adjustments are bounded to +/- this many percent
    ADJUSTMENT_LIMIT_PERCENT = 25.0

    # === Ranking Windows ===
    # "Top 20" per appellation is a product rule, not a page size
    APPELLATION_TOP_N = 20
    GLOBAL_TOP_N = 100

    # === Refresh Policy ===
    DEFAULT_REFRESH_THRESHOLD_DAYS = 75

    # === Uploads ===
    MAX_UPLOAD_SIZE_MB = 10
    MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
    ALLOWED_IMPORT_FORMATS: List[str] = ["csv", "json"]

    # === Environment ===
    @staticmethod
    def log_level() -> str:
        """Log level (DEBUG, INFO, WARNING, ERROR)."""
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def admin_user() -> str:
        """Username for the admin routes."""
        return os.getenv("ADMIN_USER", "admin")

    @staticmethod
    def admin_password() -> str:
        """Password for the admin routes. CHANGE THIS in production."""
        return os.getenv("ADMIN_PASSWORD", "changeme")

    @staticmethod
    def refresh_threshold_days() -> int:
        """Days after the last successful ingestion before a refresh is due."""
        try:
            return int(os.getenv("REFRESH_THRESHOLD_DAYS", str(Config.DEFAULT_REFRESH_THRESHOLD_DAYS)))
        except ValueError:
            return Config.DEFAULT_REFRESH_THRESHOLD_DAYS

    @staticmethod
    def refresh_check_interval_seconds() -> float:
        """How often the background task runs the due-check. Default: once a day."""
        try:
            return float(os.getenv("REFRESH_CHECK_INTERVAL_SECONDS", "86400"))
        except ValueError:
            return 86400.0

    # === Database Persistence ===
    @staticmethod
    def database_path() -> str:
        """Path to SQLite database file.
        Default: backend/aoc_ranking/data/catalog.db (relative to the package).
        Override with DATABASE_PATH env var for container deployments.
        """
        default = str(Path(__file__).parent / "data" / "catalog.db")
        return os.getenv("DATABASE_PATH", default)

    @staticmethod
    def data_seed_path() -> str:
        """JSON export used for seeding and for scheduled refreshes."""
        default = str(Path(__file__).parent / "data" / "seed.json")
        return os.getenv("DATA_SEED", default)
