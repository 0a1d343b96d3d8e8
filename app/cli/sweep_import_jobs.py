"""Delete stale import jobs.

Usage:
    python -m app.cli.sweep_import_jobs
    python -m app.cli.sweep_import_jobs --db-path /data/bookmarks.db --max-age-hours 6
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from app.application.use_cases.sweep_import_jobs import SweepImportJobsUseCase
from app.config import load_config
from app.core.logging_utils import get_logger, setup_json_logging
from app.db.session import DatabaseSessionManager
from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
    SqliteImportJobRepositoryAdapter,
)

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Delete import jobs older than a cutoff")
    parser.add_argument("--db-path", help="SQLite database path (defaults to DB_PATH)")
    parser.add_argument(
        "--max-age-hours",
        type=float,
        help="Age after which jobs are deleted (defaults to IMPORT_JOB_MAX_AGE_HOURS)",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


async def _run(db_path: str, max_age_hours: float) -> int:
    db = DatabaseSessionManager(path=db_path)
    try:
        db.migrate()
        result = await SweepImportJobsUseCase(SqliteImportJobRepositoryAdapter(db)).execute(
            max_age_hours
        )
    finally:
        db.close()
    print(json.dumps(result.to_dict()))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    cfg = load_config()
    setup_json_logging(args.log_level or cfg.runtime.log_level)

    db_path = args.db_path or cfg.runtime.db_path
    max_age_hours = (
        args.max_age_hours if args.max_age_hours is not None else cfg.imports.job_max_age_hours
    )
    if max_age_hours <= 0:
        logger.error("sweep_invalid_max_age", extra={"max_age_hours": max_age_hours})
        return 2

    return asyncio.run(_run(db_path, max_age_hours))


if __name__ == "__main__":
    sys.exit(main())
