"""Use case for merging tag records that differ only in casing.

Tags created before casing was canonicalized can leave several records in
one case-insensitive class. This keeps the earliest-created record, points
every bookmark at its casing, and deletes the rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.application.dto.import_dto import MergeTagsResult, TagMergeDetail
from app.domain.exceptions.domain_exceptions import RemoteRepositoryError
from app.domain.services.tag_canonicalizer import plan_tag_merge

if TYPE_CHECKING:
    from app.adapters.record_store.protocols import RepositoryReader, RepositoryWriter


logger = logging.getLogger(__name__)


@dataclass
class MergeDuplicateTagsCommand:
    owner: str


class MergeDuplicateTagsUseCase:
    """Merge case-duplicate tags for one owner.

    Individual remote failures are logged and left out of the counts. When a
    bookmark rewrite fails, that class's duplicate records are kept so that
    running the merge again can finish the job.
    """

    def __init__(self, reader: RepositoryReader, writer: RepositoryWriter) -> None:
        self._reader = reader
        self._writer = writer

    async def execute(self, command: MergeDuplicateTagsCommand) -> MergeTagsResult:
        tags = await self._reader.list_tags()
        bookmarks = await self._reader.list_bookmarks()
        plan = plan_tag_merge(tags, bookmarks)
        if plan.is_empty:
            logger.info("tag_merge_nothing_to_merge", extra={"owner": command.owner})
            return MergeTagsResult()

        rewritten: set[str] = set()
        for rewrite in plan.rewrites:
            try:
                await self._writer.update_bookmark_tags(rewrite.record, rewrite.tags)
            except RemoteRepositoryError as e:
                logger.warning(
                    "tag_merge_bookmark_update_failed",
                    extra={"owner": command.owner, "uri": rewrite.record.uri, "error": str(e)},
                )
                continue
            rewritten.add(rewrite.record.uri)

        result = MergeTagsResult(merged=len(plan.groups), bookmarks_updated=len(rewritten))
        for group in plan.groups:
            updated = sum(1 for bookmark in group.affected if bookmark.uri in rewritten)
            if updated == len(group.affected):
                for duplicate in group.duplicates:
                    try:
                        await self._writer.delete_tag(duplicate)
                    except RemoteRepositoryError as e:
                        logger.warning(
                            "tag_merge_delete_failed",
                            extra={
                                "owner": command.owner,
                                "tag": duplicate.value,
                                "error": str(e),
                            },
                        )
                        continue
                    result.tags_deleted += 1
            else:
                logger.warning(
                    "tag_merge_group_deferred",
                    extra={
                        "owner": command.owner,
                        "canonical": group.canonical.value,
                        "pending_bookmarks": len(group.affected) - updated,
                    },
                )

            result.details.append(
                TagMergeDetail(
                    canonical=group.canonical.value,
                    merged=group.merged_values,
                    bookmarks_updated=updated,
                )
            )
            logger.info(
                "tag_merge_group_merged",
                extra={
                    "owner": command.owner,
                    "canonical": group.canonical.value,
                    "merged": group.merged_values,
                    "bookmarks_updated": updated,
                },
            )

        return result
