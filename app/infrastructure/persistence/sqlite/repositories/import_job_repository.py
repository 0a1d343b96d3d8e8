"""SQLite implementation of the import job store.

This adapter persists ImportJob and ImportChunk rows. Multi-row changes
(job creation with its chunks, chunk completion with job counters, claims,
deletions) run inside a single transaction.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from app.core.time_utils import coerce_datetime, utc_now
from app.db.models import ImportChunk, ImportJob, model_to_dict
from app.domain.models.import_job import (
    CandidateBookmark,
    ChunkStatus,
    ImportStatus,
)
from app.domain.models.import_job import (
    ImportChunk as ImportChunkModel,
)
from app.domain.models.import_job import (
    ImportJob as ImportJobModel,
)
from app.infrastructure.persistence.sqlite.base import SqliteBaseRepository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

logger = logging.getLogger(__name__)


def _delete_jobs(job_ids: list[str]) -> int:
    if not job_ids:
        return 0
    ImportChunk.delete().where(ImportChunk.job.in_(job_ids)).execute()
    return ImportJob.delete().where(ImportJob.id.in_(job_ids)).execute()


def _delete_active_jobs(owner: str) -> int:
    job_ids = [
        row.id
        for row in ImportJob.select(ImportJob.id).where(
            (ImportJob.owner == owner)
            & (ImportJob.status.in_([s.value for s in ImportStatus.active()]))
        )
    ]
    return _delete_jobs(job_ids)


class SqliteImportJobRepositoryAdapter(SqliteBaseRepository):
    """Adapter for import job and chunk persistence."""

    async def async_create_job(
        self,
        *,
        owner: str,
        format: str,
        total: int,
        skipped: int,
        tags: Sequence[str],
        chunks: Sequence[Sequence[CandidateBookmark]],
        replace_active: bool = True,
    ) -> ImportJobModel:
        """Create a job together with all of its chunks.

        Args:
            owner: Repository owner the job belongs to
            format: Name of the parser that produced the candidates
            total: Candidates considered before deduplication
            skipped: Candidates dropped before chunking
            tags: Canonical tags attached to every imported bookmark
            chunks: Ordered candidate slices, one row per slice
            replace_active: Delete the owner's pending/processing jobs first

        Returns:
            The created job
        """

        def _create() -> dict[str, Any]:
            replaced = _delete_active_jobs(owner) if replace_active else 0

            job = ImportJob.create(
                id=str(uuid.uuid4()),
                owner=owner,
                format=format,
                total=total,
                skipped=skipped,
                total_chunks=len(chunks),
                tags_json=list(tags),
                status=ImportStatus.PENDING.value,
            )
            if chunks:
                ImportChunk.insert_many(
                    [
                        {
                            ImportChunk.job: job.id,
                            ImportChunk.chunk_index: index,
                            ImportChunk.bookmarks_json: [b.to_dict() for b in chunk],
                            ImportChunk.status: ChunkStatus.PENDING.value,
                        }
                        for index, chunk in enumerate(chunks)
                    ]
                ).execute()

            data = model_to_dict(job) or {}
            data["_replaced"] = replaced
            return data

        data = await self._transaction(_create, operation_name="create_import_job")
        replaced = data.pop("_replaced", 0)
        job = self.to_domain_model(data)
        logger.info(
            "import_job_created",
            extra={
                "job_id": job.id,
                "owner": owner,
                "total": total,
                "skipped": skipped,
                "total_chunks": job.total_chunks,
                "replaced_jobs": replaced,
            },
        )
        return job

    async def async_get_job(self, job_id: str) -> ImportJobModel | None:
        """Get a job by ID, or None if it does not exist."""

        def _get() -> dict[str, Any] | None:
            return model_to_dict(ImportJob.get_or_none(ImportJob.id == job_id))

        data = await self._execute(_get, operation_name="get_import_job", read_only=True)
        return self.to_domain_model(data) if data else None

    async def async_claim_next_chunk(
        self, job_id: str, *, claim_timeout_sec: float
    ) -> ImportChunkModel | None:
        """Claim the lowest-index unfinished chunk of a job.

        A chunk is claimable when it is pending, or when an earlier claim on
        it is older than ``claim_timeout_sec``. The claim is a conditional
        update on the row state that was read, so two callers can never hold
        the same chunk. While the lowest unfinished chunk is under a live
        claim nothing is returned, which keeps chunks of one job sequential.

        Returns:
            The claimed chunk carrying its ``claim_token``, or None
        """

        def _claim() -> ImportChunkModel | None:
            now = utc_now()
            row = (
                ImportChunk.select()
                .where(
                    (ImportChunk.job == job_id) & (ImportChunk.status != ChunkStatus.DONE.value)
                )
                .order_by(ImportChunk.chunk_index.asc())
                .first()
            )
            if row is None:
                return None

            if row.status == ChunkStatus.PROCESSING.value:
                claimed_at = coerce_datetime(row.claimed_at)
                if claimed_at is not None and claimed_at > now - timedelta(
                    seconds=claim_timeout_sec
                ):
                    return None
                logger.warning(
                    "import_chunk_claim_expired",
                    extra={"job_id": job_id, "chunk_index": row.chunk_index},
                )

            token = uuid.uuid4().hex
            previous_token = (
                ImportChunk.claim_token.is_null()
                if row.claim_token is None
                else ImportChunk.claim_token == row.claim_token
            )
            updated = (
                ImportChunk.update(
                    {
                        ImportChunk.status: ChunkStatus.PROCESSING.value,
                        ImportChunk.claim_token: token,
                        ImportChunk.claimed_at: now,
                    }
                )
                .where(
                    (ImportChunk.id == row.id)
                    & (ImportChunk.status == row.status)
                    & previous_token
                )
                .execute()
            )
            if updated != 1:
                return None

            return ImportChunkModel(
                id=row.id,
                job_id=job_id,
                chunk_index=row.chunk_index,
                bookmarks=[CandidateBookmark.from_dict(item) for item in row.bookmarks_json or []],
                status=ChunkStatus.PROCESSING,
                claim_token=token,
            )

        return await self._transaction(_claim, operation_name="claim_import_chunk")

    async def async_complete_chunk(
        self,
        *,
        chunk_id: int,
        job_id: str,
        claim_token: str,
        imported: int,
        failed: int,
    ) -> tuple[bool, ImportJobModel | None]:
        """Mark a claimed chunk done and fold its outcome into the job counters.

        Both changes commit together. If the claim was lost in the meantime
        nothing is changed and ``applied`` is False.

        Returns:
            ``(applied, job)`` where ``job`` reflects the state after the call
        """

        def _complete() -> tuple[bool, dict[str, Any] | None]:
            updated = (
                ImportChunk.update(
                    {
                        ImportChunk.status: ChunkStatus.DONE.value,
                        ImportChunk.claim_token: None,
                    }
                )
                .where(
                    (ImportChunk.id == chunk_id)
                    & (ImportChunk.job == job_id)
                    & (ImportChunk.status == ChunkStatus.PROCESSING.value)
                    & (ImportChunk.claim_token == claim_token)
                )
                .execute()
            )
            applied = updated == 1
            if applied:
                now = utc_now()
                ImportJob.update(
                    {
                        ImportJob.imported: ImportJob.imported + imported,
                        ImportJob.failed: ImportJob.failed + failed,
                        ImportJob.processed_chunks: ImportJob.processed_chunks + 1,
                        ImportJob.status: ImportStatus.PROCESSING.value,
                        ImportJob.updated_at: now,
                    }
                ).where(ImportJob.id == job_id).execute()
                ImportJob.update({ImportJob.status: ImportStatus.COMPLETED.value}).where(
                    (ImportJob.id == job_id)
                    & (ImportJob.processed_chunks >= ImportJob.total_chunks)
                ).execute()
            return applied, model_to_dict(ImportJob.get_or_none(ImportJob.id == job_id))

        applied, data = await self._transaction(_complete, operation_name="complete_import_chunk")
        return applied, self.to_domain_model(data) if data else None

    async def async_release_chunk(self, *, chunk_id: int, claim_token: str) -> bool:
        """Return a claimed chunk to pending so the next call can retry it."""

        def _release() -> int:
            return (
                ImportChunk.update(
                    {
                        ImportChunk.status: ChunkStatus.PENDING.value,
                        ImportChunk.claim_token: None,
                        ImportChunk.claimed_at: None,
                    }
                )
                .where(
                    (ImportChunk.id == chunk_id)
                    & (ImportChunk.status == ChunkStatus.PROCESSING.value)
                    & (ImportChunk.claim_token == claim_token)
                )
                .execute()
            )

        released = await self._execute(_release, operation_name="release_import_chunk")
        return released == 1

    async def async_count_chunks(self, job_id: str, status: ChunkStatus | None = None) -> int:
        def _count() -> int:
            query = ImportChunk.select().where(ImportChunk.job == job_id)
            if status is not None:
                query = query.where(ImportChunk.status == status.value)
            return query.count()

        return await self._execute(_count, operation_name="count_import_chunks", read_only=True)

    async def async_delete_active_jobs(self, owner: str) -> int:
        """Delete an owner's pending/processing jobs and their chunks."""

        deleted = await self._transaction(
            _delete_active_jobs, owner, operation_name="delete_active_import_jobs"
        )
        if deleted:
            logger.info("import_jobs_replaced", extra={"owner": owner, "deleted": deleted})
        return deleted

    async def async_delete_jobs_older_than(self, cutoff: datetime) -> int:
        """Delete every job created before ``cutoff``, regardless of status."""

        def _delete() -> int:
            job_ids = [
                row.id
                for row in ImportJob.select(ImportJob.id).where(ImportJob.created_at < cutoff)
            ]
            return _delete_jobs(job_ids)

        return await self._transaction(_delete, operation_name="delete_expired_import_jobs")

    @staticmethod
    def to_domain_model(data: dict[str, Any]) -> ImportJobModel:
        """Convert a job row dictionary to the domain model."""
        return ImportJobModel(
            id=data["id"],
            owner=data["owner"],
            format=data["format"],
            total=int(data["total"]),
            skipped=int(data["skipped"]),
            total_chunks=int(data["total_chunks"]),
            imported=int(data.get("imported") or 0),
            failed=int(data.get("failed") or 0),
            processed_chunks=int(data.get("processed_chunks") or 0),
            tags=list(data.get("tags_json") or []),
            status=ImportStatus(data.get("status") or ImportStatus.PENDING.value),
            created_at=coerce_datetime(data.get("created_at")),
            updated_at=coerce_datetime(data.get("updated_at")),
        )
