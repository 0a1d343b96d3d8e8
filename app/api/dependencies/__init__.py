"""API dependencies for FastAPI dependency injection."""

from app.api.dependencies import database, identity, record_store

__all__ = ["database", "identity", "record_store"]
