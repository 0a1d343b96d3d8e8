"""Use case for advancing an import job by exactly one chunk.

Each call:
1. Verifies the job exists and belongs to the caller
2. Claims the lowest-index unfinished chunk
3. Resolves tags against the owner's tag records, creating unseen casings
4. Writes the chunk's bookmarks in fixed-size batches; a failed batch only
   counts its own bookmarks as failed
5. Marks the chunk done and folds its outcome into the job counters

Unexpected errors release the claim and propagate; the job stays in its
last durable state so the same call can be retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.application.dto.import_dto import ProcessChunkResult
from app.application.use_cases.get_import_status import load_owned_job
from app.core.time_utils import isoformat_z, utc_now
from app.domain.exceptions.domain_exceptions import RemoteRepositoryError
from app.domain.models.import_job import (
    WRITE_BATCH_SIZE,
    ChunkOutcome,
    split_into_chunks,
)
from app.domain.models.records import BookmarkWrite
from app.domain.services.tag_canonicalizer import TagCanonicalizer

if TYPE_CHECKING:
    from app.adapters.record_store.protocols import RepositoryReader, RepositoryWriter
    from app.domain.models.import_job import ImportChunk, ImportJob
    from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
        SqliteImportJobRepositoryAdapter,
    )

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TIMEOUT_SEC = 300


@dataclass
class ProcessImportChunkCommand:
    owner: str
    job_id: str


def _result_for(
    job: ImportJob, outcome: ChunkOutcome | None = None, *, chunk_processed: bool
) -> ProcessChunkResult:
    progress = job.progress()
    outcome = outcome or ChunkOutcome()
    return ProcessChunkResult(
        chunk_processed=chunk_processed,
        done=progress.done,
        imported=outcome.imported,
        failed=outcome.failed,
        total_imported=progress.total_imported,
        total_failed=progress.total_failed,
        remaining=progress.remaining,
        result=job.summary() if progress.done else None,
    )


class ProcessImportChunkUseCase:
    """Process the next chunk of an import job."""

    def __init__(
        self,
        job_repository: SqliteImportJobRepositoryAdapter,
        reader: RepositoryReader,
        writer: RepositoryWriter,
        *,
        claim_timeout_sec: float = DEFAULT_CLAIM_TIMEOUT_SEC,
        batch_size: int = WRITE_BATCH_SIZE,
    ) -> None:
        self._jobs = job_repository
        self._reader = reader
        self._writer = writer
        self._claim_timeout_sec = claim_timeout_sec
        self._batch_size = batch_size

    async def execute(self, command: ProcessImportChunkCommand) -> ProcessChunkResult:
        """Execute the use case.

        Raises:
            ImportJobNotFoundError: If the job does not exist.
            ImportJobOwnershipError: If the job belongs to another owner.
        """
        job = await load_owned_job(self._jobs, command.job_id, command.owner)
        if job.is_done:
            return _result_for(job, chunk_processed=False)

        chunk = await self._jobs.async_claim_next_chunk(
            job.id, claim_timeout_sec=self._claim_timeout_sec
        )
        if chunk is None:
            # Another call holds the current chunk, or it finished meanwhile
            current = await self._jobs.async_get_job(job.id) or job
            logger.info(
                "import_chunk_not_claimed",
                extra={"job_id": job.id, "remaining": current.progress().remaining},
            )
            return _result_for(current, chunk_processed=False)

        try:
            outcome = await self._process_chunk(job, chunk)
        except Exception:
            logger.exception(
                "import_chunk_failed",
                extra={"job_id": job.id, "chunk_index": chunk.chunk_index},
            )
            await self._release(chunk)
            raise

        applied, updated = await self._jobs.async_complete_chunk(
            chunk_id=chunk.id,
            job_id=job.id,
            claim_token=chunk.claim_token or "",
            imported=outcome.imported,
            failed=outcome.failed,
        )
        current = updated or job
        if not applied:
            logger.warning(
                "import_chunk_claim_lost",
                extra={"job_id": job.id, "chunk_index": chunk.chunk_index},
            )
            return _result_for(current, chunk_processed=False)

        logger.info(
            "import_chunk_processed",
            extra={
                "job_id": job.id,
                "chunk_index": chunk.chunk_index,
                "imported": outcome.imported,
                "failed": outcome.failed,
                "processed_chunks": current.processed_chunks,
                "total_chunks": current.total_chunks,
                "status": current.status.value,
            },
        )
        return _result_for(current, outcome, chunk_processed=True)

    async def _process_chunk(self, job: ImportJob, chunk: ImportChunk) -> ChunkOutcome:
        canonicalizer = TagCanonicalizer(await self._reader.list_tags())
        default_created_at = isoformat_z(utc_now())
        writes = [
            BookmarkWrite(
                url=bookmark.url,
                title=bookmark.title,
                description=bookmark.description,
                created_at=bookmark.created_at or default_created_at,
                tags=tuple(canonicalizer.resolve_all([*bookmark.source_tags, *job.tags])),
            )
            for bookmark in chunk.bookmarks
        ]
        await self._create_missing_tags(job, canonicalizer.new_tags)

        outcome = ChunkOutcome()
        for index, batch in enumerate(split_into_chunks(writes, self._batch_size)):
            outcome = outcome + await self._write_batch(job, chunk, index, batch)
        return outcome

    async def _create_missing_tags(self, job: ImportJob, values: list[str]) -> None:
        for value in values:
            try:
                await self._writer.create_tag(value)
            except RemoteRepositoryError as e:
                logger.warning(
                    "import_tag_create_failed",
                    extra={"job_id": job.id, "tag": value, "error": str(e)},
                )

    async def _write_batch(
        self, job: ImportJob, chunk: ImportChunk, index: int, batch: list[BookmarkWrite]
    ) -> ChunkOutcome:
        try:
            results = await self._writer.write_bookmarks(batch)
        except RemoteRepositoryError as e:
            logger.warning(
                "import_batch_failed",
                extra={
                    "job_id": job.id,
                    "chunk_index": chunk.chunk_index,
                    "batch_index": index,
                    "batch_size": len(batch),
                    "status_code": e.status_code,
                    "error": str(e),
                },
            )
            return ChunkOutcome(failed=len(batch))

        imported = sum(1 for result in results[: len(batch)] if result.ok)
        failed = len(batch) - imported
        if failed:
            logger.warning(
                "import_batch_partial_failure",
                extra={
                    "job_id": job.id,
                    "chunk_index": chunk.chunk_index,
                    "batch_index": index,
                    "failed": failed,
                },
            )
        return ChunkOutcome(imported=imported, failed=failed)

    async def _release(self, chunk: ImportChunk) -> None:
        try:
            await self._jobs.async_release_chunk(
                chunk_id=chunk.id, claim_token=chunk.claim_token or ""
            )
        except Exception:
            # The claim lease still expires on its own
            logger.exception(
                "import_chunk_release_failed",
                extra={"job_id": chunk.job_id, "chunk_index": chunk.chunk_index},
            )
