"""SQLite repository adapters.

Repository adapters that persist import jobs and their chunks with Peewee.
"""

from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
    SqliteImportJobRepositoryAdapter,
)

__all__ = ["SqliteImportJobRepositoryAdapter"]
