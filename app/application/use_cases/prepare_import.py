"""Use case for preparing a chunked bookmark import.

Preparation runs once per import:
1. Deduplicate candidates against the owner's existing bookmarks
2. Return a final result immediately when nothing is left to import
3. Otherwise canonicalize the uniform tags and persist a job split into chunks
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from app.application.dto.import_dto import PrepareImportResult
from app.domain.exceptions.domain_exceptions import ValidationError
from app.domain.models.import_job import CHUNK_SIZE, ImportSummary, split_into_chunks
from app.domain.services.dedup_filter import partition_candidates
from app.domain.services.tag_canonicalizer import TagCanonicalizer

if TYPE_CHECKING:
    from app.adapters.record_store.protocols import RepositoryReader
    from app.domain.models.import_job import CandidateBookmark
    from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
        SqliteImportJobRepositoryAdapter,
    )

logger = logging.getLogger(__name__)

DEFAULT_MAX_CANDIDATES = 50_000


@dataclass
class PrepareImportCommand:
    """Command for preparing an import of parser-normalized bookmarks."""

    owner: str
    format: str
    candidates: list[CandidateBookmark]
    tags: list[str] = field(default_factory=list)
    max_candidates: int = DEFAULT_MAX_CANDIDATES

    def __post_init__(self) -> None:
        """Validate command parameters."""
        if not self.owner or not self.owner.strip():
            msg = "owner is required"
            raise ValidationError(msg)
        if not self.format or not self.format.strip():
            msg = "Import format is required"
            raise ValidationError(msg)
        if not self.candidates:
            msg = "No bookmarks provided"
            raise ValidationError(msg)
        if len(self.candidates) > self.max_candidates:
            msg = f"Too many bookmarks in one import (max {self.max_candidates})"
            raise ValidationError(
                msg,
                details={"count": len(self.candidates), "max": self.max_candidates},
            )


class PrepareImportUseCase:
    """Deduplicate candidates and create the import job.

    Example:
        ```python
        use_case = PrepareImportUseCase(job_repository, gateway)
        result = await use_case.execute(
            PrepareImportCommand(owner="did:plc:abc", format="netscape", candidates=items)
        )
        ```
    """

    def __init__(
        self,
        job_repository: SqliteImportJobRepositoryAdapter,
        reader: RepositoryReader,
    ) -> None:
        self._jobs = job_repository
        self._reader = reader

    async def execute(self, command: PrepareImportCommand) -> PrepareImportResult:
        logger.info(
            "prepare_import_started",
            extra={
                "owner": command.owner,
                "format": command.format,
                "candidates": len(command.candidates),
            },
        )

        existing = await self._reader.list_bookmarks()
        dedup = partition_candidates(command.candidates, existing)
        to_import = len(dedup.to_import)

        if to_import == 0:
            logger.info(
                "prepare_import_nothing_to_import",
                extra={"owner": command.owner, "total": dedup.total, "skipped": dedup.skipped},
            )
            return PrepareImportResult(
                total=dedup.total,
                skipped=dedup.skipped,
                to_import=0,
                total_chunks=0,
                result=ImportSummary(
                    total=dedup.total,
                    skipped=dedup.skipped,
                    imported=0,
                    failed=0,
                    format=command.format,
                ),
            )

        tags = await self._canonical_tags(command.tags)
        chunks = split_into_chunks(dedup.to_import, CHUNK_SIZE)
        job = await self._jobs.async_create_job(
            owner=command.owner,
            format=command.format,
            total=dedup.total,
            skipped=dedup.skipped,
            tags=tags,
            chunks=chunks,
        )

        return PrepareImportResult(
            total=job.total,
            skipped=job.skipped,
            to_import=job.to_import,
            total_chunks=job.total_chunks,
            job_id=job.id,
        )

    async def _canonical_tags(self, tags: list[str]) -> list[str]:
        """Resolve the uniform tags to the owner's stored casings."""
        if not any(tag.strip() for tag in tags):
            return []
        existing = await self._reader.list_tags()
        return TagCanonicalizer(existing).resolve_all(tags)
