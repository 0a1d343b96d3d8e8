"""Async XRPC client for the owner's remote record store."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from app.adapters.record_store.models import (
    ApplyWritesResponse,
    CreateWrite,
    ListRecordsResponse,
    RecordRef,
    RepoRecord,
)
from app.domain.exceptions.domain_exceptions import RemoteRepositoryError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from typing import Self

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 0.5  # seconds
DEFAULT_MAX_DELAY = 10.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter

LIST_PAGE_SIZE = 100


class RecordStoreError(RemoteRepositoryError):
    """Base exception for record store client errors."""


class RecordStoreRetryableError(RecordStoreError):
    """Error that can be retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code, retryable=True)


def _is_retryable_error(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException)):
        return True
    return isinstance(exc, RecordStoreRetryableError)


def _calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Calculate delay with exponential backoff and jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Jitter factor (0.1 = 10% random variation)

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + delay * jitter * random.random()


def _to_record_store_error(exc: Exception, operation_name: str) -> RecordStoreError:
    status_code = None
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
    return RecordStoreError(
        f"{operation_name} failed: {exc}",
        details={"operation": operation_name},
        status_code=status_code,
        retryable=_is_retryable_error(exc),
    )


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
) -> T:
    """Execute an async function with exponential backoff retry.

    Transport errors that are not retried, and retryable errors that exhaust
    their attempts, surface as RecordStoreError.

    Args:
        func: Async function to execute
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries
        jitter: Random jitter factor to add to delay
        operation_name: Name of operation for logging

    Returns:
        Result of the function

    Raises:
        RecordStoreError: If the call fails permanently or retries are exhausted
    """
    last_exception: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except (httpx.HTTPError, ValueError) as e:
            last_exception = e

            if not _is_retryable_error(e):
                raise _to_record_store_error(e, operation_name) from e

            if attempt == max_retries:
                logger.error(
                    "record_store_retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempt + 1,
                        "error": str(e),
                    },
                )
                raise _to_record_store_error(e, operation_name) from e

            delay = _calculate_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "record_store_retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)

    raise RecordStoreError(f"{operation_name} failed") from last_exception


class RecordStoreClient:
    """Async HTTP client for one owner's XRPC record store."""

    # Default per-endpoint timeouts (seconds)
    DEFAULT_TIMEOUTS: dict[str, float] = {
        "list_records": 30.0,
        "apply_writes": 60.0,
        "create_record": 15.0,
        "put_record": 15.0,
        "delete_record": 15.0,
    }

    def __init__(
        self,
        service_url: str,
        access_token: str,
        timeout: float = 30.0,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        endpoint_timeouts: dict[str, float] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the record store client.

        Args:
            service_url: Base URL of the record store (e.g., https://pds.example.com)
            access_token: Bearer token of the repository owner
            timeout: Default request timeout in seconds
            max_retries: Maximum number of retry attempts for transient failures
            retry_base_delay: Base delay between retries in seconds
            retry_max_delay: Maximum delay between retries in seconds
            endpoint_timeouts: Custom per-endpoint timeouts (overrides defaults)
            transport: Optional httpx transport, used by tests
        """
        self.service_url = service_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.endpoint_timeouts = {**self.DEFAULT_TIMEOUTS, **(endpoint_timeouts or {})}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def get_timeout(self, endpoint: str) -> float:
        return self.endpoint_timeouts.get(endpoint, self.timeout)

    async def __aenter__(self) -> Self:
        """Enter async context."""
        self._client = httpx.AsyncClient(
            base_url=self.service_url,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            raise RecordStoreError("Client not initialized. Use async context manager.")
        return self._client

    async def _with_retry(self, func: Callable[[], Awaitable[T]], operation_name: str) -> T:
        return await retry_with_backoff(
            func,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            operation_name=operation_name,
        )

    async def _post(self, method: str, body: dict[str, Any], endpoint: str) -> httpx.Response:
        response = await self.client.post(
            f"/xrpc/{method}", json=body, timeout=self.get_timeout(endpoint)
        )
        response.raise_for_status()
        return response

    async def list_records(
        self,
        repo: str,
        collection: str,
        *,
        limit: int = LIST_PAGE_SIZE,
        cursor: str | None = None,
    ) -> ListRecordsResponse:
        """Get one page of records from a collection."""
        params: dict[str, str | int] = {"repo": repo, "collection": collection, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        timeout = self.get_timeout("list_records")

        async def _fetch() -> ListRecordsResponse:
            response = await self.client.get(
                "/xrpc/com.atproto.repo.listRecords", params=params, timeout=timeout
            )
            response.raise_for_status()
            return ListRecordsResponse.model_validate(response.json())

        return await self._with_retry(_fetch, f"list_records({collection})")

    async def list_all_records(self, repo: str, collection: str) -> list[RepoRecord]:
        """Get every record of a collection (handles pagination)."""
        records: list[RepoRecord] = []
        cursor: str | None = None
        seen_cursors: set[str] = set()

        while True:
            page = await self.list_records(repo, collection, cursor=cursor)
            records.extend(page.records)
            if not page.cursor or not page.records or page.cursor in seen_cursors:
                break
            seen_cursors.add(page.cursor)
            cursor = page.cursor

        logger.info(
            "record_store_listed_all_records",
            extra={"collection": collection, "count": len(records)},
        )
        return records

    async def apply_writes(self, repo: str, writes: Sequence[CreateWrite]) -> ApplyWritesResponse:
        """Submit a batch of create operations in one request."""
        body = {"repo": repo, "writes": [w.model_dump(by_alias=True) for w in writes]}

        async def _apply() -> ApplyWritesResponse:
            response = await self._post("com.atproto.repo.applyWrites", body, "apply_writes")
            payload = response.json() if response.content else {}
            return ApplyWritesResponse.model_validate(payload)

        return await self._with_retry(_apply, "apply_writes")

    async def create_record(
        self,
        repo: str,
        collection: str,
        record: dict[str, Any],
        *,
        rkey: str | None = None,
    ) -> RecordRef:
        body: dict[str, Any] = {"repo": repo, "collection": collection, "record": record}
        if rkey:
            body["rkey"] = rkey

        async def _create() -> RecordRef:
            response = await self._post("com.atproto.repo.createRecord", body, "create_record")
            return RecordRef.model_validate(response.json())

        return await self._with_retry(_create, f"create_record({collection})")

    async def put_record(
        self, repo: str, collection: str, rkey: str, record: dict[str, Any]
    ) -> RecordRef:
        body = {"repo": repo, "collection": collection, "rkey": rkey, "record": record}

        async def _put() -> RecordRef:
            response = await self._post("com.atproto.repo.putRecord", body, "put_record")
            return RecordRef.model_validate(response.json())

        return await self._with_retry(_put, f"put_record({collection}/{rkey})")

    async def delete_record(self, repo: str, collection: str, rkey: str) -> None:
        body = {"repo": repo, "collection": collection, "rkey": rkey}

        async def _delete() -> None:
            await self._post("com.atproto.repo.deleteRecord", body, "delete_record")

        await self._with_retry(_delete, f"delete_record({collection}/{rkey})")
