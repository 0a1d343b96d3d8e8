"""Pytest configuration and shared fixtures.

This module provides common fixtures for all tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from app.core.time_utils import UTC
from app.db.session import DatabaseSessionManager
from app.domain.exceptions.domain_exceptions import RemoteRepositoryError
from app.domain.models.import_job import CandidateBookmark
from app.domain.models.records import BookmarkRecord, TagRecord, WriteResult
from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
    SqliteImportJobRepositoryAdapter,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.domain.models.records import BookmarkWrite

OWNER = "did:plc:owner"
OTHER_OWNER = "did:plc:someoneelse"

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def make_candidates(count: int, *, prefix: str = "https://example.com/page") -> list[CandidateBookmark]:
    return [
        CandidateBookmark(url=f"{prefix}/{i}", title=f"Page {i}") for i in range(count)
    ]


def tag_record(value: str, minutes: int = 0, *, rkey: str | None = None) -> TagRecord:
    key = rkey or f"tag{value.lower()}{minutes}"
    return TagRecord(
        uri=f"at://{OWNER}/app.bookmarkvault.tag/{key}",
        value=value,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def bookmark_record(url: str, tags: Sequence[str] = (), *, rkey: str) -> BookmarkRecord:
    return BookmarkRecord(
        uri=f"at://{OWNER}/community.lexicon.bookmarks.bookmark/{rkey}",
        subject=url,
        tags=tuple(tags),
        created_at=BASE_TIME,
        value={"subject": url, "tags": list(tags), "createdAt": "2024-01-01T00:00:00Z"},
    )


class FakeRecordStore:
    """In-memory RepositoryReader/RepositoryWriter.

    Failure knobs:
        fail_write_calls: 0-based ``write_bookmarks`` call numbers that raise a remote error
        crash_write_calls: call numbers that raise an unexpected RuntimeError
        rejected_urls: URLs whose individual write result is a failure
    """

    def __init__(
        self,
        bookmarks: Sequence[BookmarkRecord] = (),
        tags: Sequence[TagRecord] = (),
    ) -> None:
        self.bookmarks: list[BookmarkRecord] = list(bookmarks)
        self.tags: list[TagRecord] = list(tags)
        self.write_calls: list[list[BookmarkWrite]] = []
        self.created_tags: list[str] = []
        self.updated: dict[str, list[str]] = {}
        self.deleted_tags: list[str] = []

        self.fail_write_calls: set[int] = set()
        self.crash_write_calls: set[int] = set()
        self.rejected_urls: set[str] = set()
        self.fail_tag_creates: set[str] = set()
        self.fail_updates: set[str] = set()
        self.fail_deletes: set[str] = set()
        self.list_tags_error: Exception | None = None
        self.list_tags_calls = 0

    async def list_bookmarks(self) -> list[BookmarkRecord]:
        return list(self.bookmarks)

    async def list_tags(self) -> list[TagRecord]:
        self.list_tags_calls += 1
        if self.list_tags_error is not None:
            raise self.list_tags_error
        return list(self.tags)

    async def write_bookmarks(self, batch: Sequence[BookmarkWrite]) -> list[WriteResult]:
        call = len(self.write_calls)
        self.write_calls.append(list(batch))
        if call in self.crash_write_calls:
            raise RuntimeError("connection reset by peer")
        if call in self.fail_write_calls:
            raise RemoteRepositoryError("applyWrites failed", status_code=400)

        results = []
        for index, write in enumerate(batch):
            if write.url in self.rejected_urls:
                results.append(WriteResult(ok=False, error="InvalidRecord"))
                continue
            rkey = f"b{call}x{index}"
            self.bookmarks.append(bookmark_record(write.url, write.tags, rkey=rkey))
            results.append(WriteResult(ok=True, uri=self.bookmarks[-1].uri))
        return results

    async def create_tag(self, value: str) -> TagRecord:
        if value in self.fail_tag_creates:
            raise RemoteRepositoryError("createRecord failed", status_code=500, retryable=True)
        self.created_tags.append(value)
        record = tag_record(value, minutes=1000 + len(self.tags))
        self.tags.append(record)
        return record

    async def update_bookmark_tags(self, record: BookmarkRecord, tags: Sequence[str]) -> None:
        if record.uri in self.fail_updates:
            raise RemoteRepositoryError("putRecord failed", status_code=500, retryable=True)
        self.updated[record.uri] = list(tags)

    async def delete_tag(self, record: TagRecord) -> None:
        if record.value in self.fail_deletes:
            raise RemoteRepositoryError("deleteRecord failed", status_code=500, retryable=True)
        self.deleted_tags.append(record.value)


@pytest.fixture
def db(tmp_path):
    manager = DatabaseSessionManager(str(tmp_path / "test.db"))
    manager.migrate()
    yield manager
    manager.close()


@pytest.fixture
def job_repo(db):
    return SqliteImportJobRepositoryAdapter(db)


@pytest.fixture
def store():
    return FakeRecordStore()
