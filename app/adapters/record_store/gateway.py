"""Owner-scoped reader/writer over the record store client."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from app.adapters.record_store.models import CreateWrite
from app.core.time_utils import coerce_datetime, isoformat_z, utc_now
from app.domain.models.records import BookmarkRecord, TagRecord, WriteResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.adapters.record_store.client import RecordStoreClient
    from app.adapters.record_store.models import RepoRecord, WriteOpResult
    from app.config import RecordStoreConfig
    from app.domain.models.records import BookmarkWrite

logger = logging.getLogger(__name__)

RKEY_LENGTH = 13


def new_rkey() -> str:
    """Random 13-character hex record key."""
    return uuid.uuid4().hex[:RKEY_LENGTH]


def _bookmark_from_record(record: RepoRecord) -> BookmarkRecord | None:
    subject = record.value.get("subject")
    if not isinstance(subject, str):
        return None
    tags = record.value.get("tags") or []
    return BookmarkRecord(
        uri=record.uri,
        subject=subject,
        tags=tuple(str(tag) for tag in tags if isinstance(tag, str)),
        created_at=coerce_datetime(record.value.get("createdAt")),
        value=dict(record.value),
    )


def _tag_from_record(record: RepoRecord) -> TagRecord | None:
    value = record.value.get("value")
    if not isinstance(value, str) or not value.strip():
        return None
    return TagRecord(
        uri=record.uri,
        value=value,
        created_at=coerce_datetime(record.value.get("createdAt")),
    )


class RecordStoreGateway:
    """RepositoryReader and RepositoryWriter for a single owner.

    Each bookmark becomes a create in the bookmark collection, plus an
    annotation create sharing its record key when it has a title or a
    description. A bookmark succeeds only if all of its operations do.
    """

    def __init__(self, client: RecordStoreClient, owner: str, config: RecordStoreConfig) -> None:
        self._client = client
        self.owner = owner
        self._bookmarks = config.bookmark_collection
        self._tags = config.tag_collection
        self._annotations = config.annotation_collection

    async def list_bookmarks(self) -> list[BookmarkRecord]:
        records = await self._client.list_all_records(self.owner, self._bookmarks)
        bookmarks = [b for b in (_bookmark_from_record(r) for r in records) if b is not None]
        if len(bookmarks) != len(records):
            logger.warning(
                "record_store_malformed_bookmarks_ignored",
                extra={"owner": self.owner, "ignored": len(records) - len(bookmarks)},
            )
        return bookmarks

    async def list_tags(self) -> list[TagRecord]:
        records = await self._client.list_all_records(self.owner, self._tags)
        return [t for t in (_tag_from_record(r) for r in records) if t is not None]

    def _operations_for(self, bookmark: BookmarkWrite) -> list[CreateWrite]:
        rkey = new_rkey()
        ops = [
            CreateWrite(
                collection=self._bookmarks,
                rkey=rkey,
                value={
                    "subject": bookmark.url,
                    "createdAt": bookmark.created_at,
                    "tags": list(bookmark.tags),
                },
            )
        ]
        if bookmark.title or bookmark.description:
            annotation: dict[str, Any] = {
                "subject": f"at://{self.owner}/{self._bookmarks}/{rkey}",
                "createdAt": bookmark.created_at,
            }
            if bookmark.title:
                annotation["title"] = bookmark.title
            if bookmark.description:
                annotation["description"] = bookmark.description
            ops.append(CreateWrite(collection=self._annotations, rkey=rkey, value=annotation))
        return ops

    async def write_bookmarks(self, batch: Sequence[BookmarkWrite]) -> list[WriteResult]:
        """Write a batch in one ``applyWrites`` call.

        Raises:
            RecordStoreError: If the call itself fails; the whole batch failed
        """
        if not batch:
            return []
        grouped = [self._operations_for(bookmark) for bookmark in batch]
        writes = [op for ops in grouped for op in ops]
        response = await self._client.apply_writes(self.owner, writes)

        if response.results is None:
            return [
                WriteResult(ok=True, uri=f"at://{self.owner}/{self._bookmarks}/{ops[0].rkey}")
                for ops in grouped
            ]

        results: list[WriteResult] = []
        position = 0
        for ops in grouped:
            entries: list[WriteOpResult | None] = [
                response.results[i] if i < len(response.results) else None
                for i in range(position, position + len(ops))
            ]
            position += len(ops)
            failures = [entry for entry in entries if entry is None or not entry.ok]
            if failures:
                first = failures[0]
                error = first.error if first is not None else "missing write result"
                results.append(WriteResult(ok=False, error=error))
            else:
                first_entry = entries[0]
                results.append(WriteResult(ok=True, uri=first_entry.uri if first_entry else None))
        return results

    async def create_tag(self, value: str) -> TagRecord:
        created_at = isoformat_z(utc_now())
        ref = await self._client.create_record(
            self.owner,
            self._tags,
            {"value": value, "createdAt": created_at},
            rkey=new_rkey(),
        )
        return TagRecord(uri=ref.uri, value=value, created_at=coerce_datetime(created_at))

    async def update_bookmark_tags(self, record: BookmarkRecord, tags: Sequence[str]) -> None:
        await self._client.put_record(
            self.owner,
            self._bookmarks,
            record.rkey,
            {**record.value, "subject": record.subject, "tags": list(tags)},
        )

    async def delete_tag(self, record: TagRecord) -> None:
        await self._client.delete_record(self.owner, self._tags, record.rkey)
