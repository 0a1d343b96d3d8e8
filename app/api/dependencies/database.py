"""Database session and repository dependencies for FastAPI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from app.api.exceptions import DatabaseError
from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
    SqliteImportJobRepositoryAdapter,
)

if TYPE_CHECKING:
    from app.db.session import DatabaseSessionManager


def get_session_manager(request: Request) -> DatabaseSessionManager:
    """Return the session manager opened by the application lifespan."""
    manager = getattr(request.app.state, "db", None)
    if manager is None:
        raise DatabaseError("Database is not initialized")
    return manager


def get_import_job_repository(request: Request) -> SqliteImportJobRepositoryAdapter:
    return SqliteImportJobRepositoryAdapter(get_session_manager(request))
