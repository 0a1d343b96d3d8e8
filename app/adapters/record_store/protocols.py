"""Protocol definitions (ports) for the owner's remote repository.

Use cases depend on these instead of the HTTP client so that tests and other
transports can stand in for the record store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.domain.models.records import BookmarkRecord, BookmarkWrite, TagRecord, WriteResult


class RepositoryReader(Protocol):
    async def list_bookmarks(self) -> list[BookmarkRecord]: ...

    async def list_tags(self) -> list[TagRecord]: ...


class RepositoryWriter(Protocol):
    async def write_bookmarks(self, batch: Sequence[BookmarkWrite]) -> list[WriteResult]:
        """Write a batch; returns one result per bookmark or raises RemoteRepositoryError."""
        ...

    async def create_tag(self, value: str) -> TagRecord: ...

    async def update_bookmark_tags(self, record: BookmarkRecord, tags: Sequence[str]) -> None: ...

    async def delete_tag(self, record: TagRecord) -> None: ...
