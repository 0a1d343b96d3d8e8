"""Database migration CLI tool.

Ensures the import job tables and indexes exist.

Usage:
    python -m app.cli.migrate_db

    # Specify database path
    python -m app.cli.migrate_db /path/to/bookmarks.db
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from app.db.session import DatabaseSessionManager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "/data/bookmarks.db"


def main(argv: list[str] | None = None) -> int:
    """Run database migrations."""
    args = sys.argv[1:] if argv is None else argv
    db_path = args[0] if args else DEFAULT_DB_PATH

    logger.info("Starting database migration for: %s", db_path)

    if db_path != ":memory:" and not Path(db_path).exists():
        logger.warning("Database file does not exist, will be created: %s", db_path)

    db = DatabaseSessionManager(path=db_path)
    try:
        db.migrate()
    except Exception:
        logger.exception("Database migration failed")
        return 1
    finally:
        db.close()

    logger.info("Database migration completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
