"""Database session management and core infrastructure.

This module provides the DatabaseSessionManager class, the injected handle
repositories use for database access. It handles:
- Connection management with SQLite
- Serialised writes from the event loop
- Async operation wrappers with timeout and retry logic
- Schema creation
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import peewee
from playhouse.sqlite_ext import SqliteExtDatabase

from app.db.models import ALL_MODELS, database_proxy

# Default database operation constants
DB_OPERATION_TIMEOUT = 30.0
DB_MAX_RETRIES = 3


class RowSqliteDatabase(SqliteExtDatabase):
    """SQLite database subclass that configures the row factory for dict-like access."""

    def _connect(self) -> sqlite3.Connection:
        conn = super()._connect()
        conn.row_factory = sqlite3.Row
        return conn


def _is_locked_error(exc: peewee.OperationalError) -> bool:
    error_msg = str(exc).lower()
    return "locked" in error_msg or "busy" in error_msg


@dataclass
class DatabaseSessionManager:
    """Peewee-backed database session manager.

    Constructed once at process start, closed at shutdown, and passed to
    every repository that needs the job store.

    Attributes:
        path: Path to the SQLite database file, or ":memory:" for in-memory
        operation_timeout: Default timeout for database operations in seconds
        max_retries: Maximum retries for locked/busy database errors
    """

    path: str
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)
    _write_lock: asyncio.Lock = field(init=False)

    operation_timeout: float = field(default=DB_OPERATION_TIMEOUT)
    max_retries: int = field(default=DB_MAX_RETRIES)

    def __post_init__(self) -> None:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._database = RowSqliteDatabase(
            self.path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
                "foreign_keys": 1,
                "busy_timeout": 5000,
            },
            check_same_thread=False,
        )
        database_proxy.initialize(self._database)
        self._write_lock = asyncio.Lock()

    @property
    def database(self) -> peewee.SqliteDatabase:
        """Access the underlying Peewee database instance."""
        return self._database

    def connection_context(self) -> Any:
        """Return a connection context manager."""
        return self._database.connection_context()

    def migrate(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        with self._database.connection_context(), self._database.bind_ctx(ALL_MODELS):
            self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_migrated", extra={"path": self._mask_path(self.path)})

    def close(self) -> None:
        """Close the underlying connection if it is open."""
        if not self._database.is_closed():
            self._database.close()
        self._logger.info("db_closed", extra={"path": self._mask_path(self.path)})

    async def _run_with_retries(
        self,
        run: Any,
        *,
        timeout: float,
        operation_name: str,
        event_prefix: str,
    ) -> Any:
        retries = 0
        while True:
            try:
                return await asyncio.wait_for(run(), timeout=timeout)

            except TimeoutError:
                self._logger.exception(
                    f"{event_prefix}_timeout",
                    extra={"operation": operation_name, "timeout": timeout, "retries": retries},
                )
                raise

            except peewee.OperationalError as e:
                if _is_locked_error(e) and retries < self.max_retries:
                    retries += 1
                    wait_time = 0.1 * (2**retries)  # Exponential backoff
                    self._logger.warning(
                        f"{event_prefix}_locked_retrying",
                        extra={
                            "operation": operation_name,
                            "retry": retries,
                            "max_retries": self.max_retries,
                            "wait_time": wait_time,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(wait_time)
                    continue

                self._logger.exception(
                    f"{event_prefix}_operational_error",
                    extra={"operation": operation_name, "retries": retries, "error": str(e)},
                )
                raise

            except peewee.IntegrityError as e:
                self._logger.exception(
                    f"{event_prefix}_integrity_error",
                    extra={"operation": operation_name, "error": str(e)},
                )
                raise

    async def _safe_db_operation(
        self,
        operation: Any,
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_operation",
        read_only: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Execute database operation with timeout, retry, and connection protection.

        Args:
            operation: The database operation to execute
            *args: Positional arguments for the operation
            timeout: Timeout in seconds (default: self.operation_timeout)
            operation_name: Name for logging purposes
            read_only: Whether this is a read-only operation (skips the write lock)
            **kwargs: Keyword arguments for the operation

        Returns:
            Result of the operation

        Raises:
            TimeoutError: If operation times out
            peewee.OperationalError: If database is locked or busy after retries
            peewee.IntegrityError: If constraint violation occurs
        """

        def _op_wrapper() -> Any:
            with self._database.connection_context():
                return operation(*args, **kwargs)

        async def _run() -> Any:
            if read_only:
                # WAL mode lets readers proceed alongside the single writer
                return await asyncio.to_thread(_op_wrapper)
            async with self._write_lock:
                return await asyncio.to_thread(_op_wrapper)

        return await self._run_with_retries(
            _run,
            timeout=timeout if timeout is not None else self.operation_timeout,
            operation_name=operation_name,
            event_prefix="db_operation",
        )

    async def _safe_db_transaction(
        self,
        operation: Any,
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_transaction",
        **kwargs: Any,
    ) -> Any:
        """Execute database operation within an explicit transaction with rollback.

        All changes made by ``operation`` are committed together or rolled
        back on error.

        Args:
            operation: The database operation to execute
            *args: Positional arguments for the operation
            timeout: Timeout in seconds (default: self.operation_timeout)
            operation_name: Name for logging purposes
            **kwargs: Keyword arguments for the operation

        Returns:
            Result of the operation
        """

        def _execute_in_transaction() -> Any:
            with self._database.connection_context(), self._database.atomic():
                return operation(*args, **kwargs)

        async def _run() -> Any:
            async with self._write_lock:
                return await asyncio.to_thread(_execute_in_transaction)

        return await self._run_with_retries(
            _run,
            timeout=timeout if timeout is not None else self.operation_timeout,
            operation_name=operation_name,
            event_prefix="db_transaction",
        )

    @staticmethod
    def _mask_path(path: str) -> str:
        try:
            p = Path(path)
            if p.name:
                return f".../{p.parent.name}/{p.name}" if p.parent.name else p.name
        except Exception:
            return "..."
        return "..."
