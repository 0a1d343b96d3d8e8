"""Data Transfer Objects for bookmark import operations.

``to_dict`` renders the camelCase shape returned to API clients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.domain.models.import_job import ImportJob, ImportSummary


@dataclass
class PrepareImportResult:
    """Outcome of preparing an import.

    Exactly one of ``job_id`` and ``result`` is set: a job is created only
    when something is left to import after deduplication.
    """

    total: int
    skipped: int
    to_import: int
    total_chunks: int
    job_id: str | None = None
    result: ImportSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total": self.total,
            "skipped": self.skipped,
            "toImport": self.to_import,
            "totalChunks": self.total_chunks,
        }
        if self.job_id is not None:
            data["jobId"] = self.job_id
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data


@dataclass
class ProcessChunkResult:
    """Incremental and cumulative progress after one ``process`` call."""

    chunk_processed: bool
    done: bool
    imported: int
    failed: int
    total_imported: int
    total_failed: int
    remaining: int
    result: ImportSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "chunkProcessed": self.chunk_processed,
            "done": self.done,
            "imported": self.imported,
            "failed": self.failed,
            "totalImported": self.total_imported,
            "totalFailed": self.total_failed,
            "remaining": self.remaining,
        }
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data


@dataclass
class ImportStatusDTO:
    job_id: str
    status: str
    format: str
    total: int
    skipped: int
    imported: int
    failed: int
    total_chunks: int
    processed_chunks: int
    remaining: int
    progress: int

    @classmethod
    def from_job(cls, job: ImportJob) -> ImportStatusDTO:
        return cls(
            job_id=job.id,
            status=job.status.value,
            format=job.format,
            total=job.total,
            skipped=job.skipped,
            imported=job.imported,
            failed=job.failed,
            total_chunks=job.total_chunks,
            processed_chunks=job.processed_chunks,
            remaining=job.progress().remaining,
            progress=job.progress_percent(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status,
            "format": self.format,
            "total": self.total,
            "skipped": self.skipped,
            "imported": self.imported,
            "failed": self.failed,
            "totalChunks": self.total_chunks,
            "processedChunks": self.processed_chunks,
            "remaining": self.remaining,
            "progress": self.progress,
        }


@dataclass
class TagMergeDetail:
    canonical: str
    merged: list[str]
    bookmarks_updated: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "canonical": self.canonical,
            "merged": list(self.merged),
            "bookmarksUpdated": self.bookmarks_updated,
        }


@dataclass
class MergeTagsResult:
    """Outcome of merging case-duplicate tags.

    ``merged`` counts equivalence classes that had duplicates.
    """

    merged: int = 0
    tags_deleted: int = 0
    bookmarks_updated: int = 0
    details: list[TagMergeDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "merged": self.merged,
            "tagsDeleted": self.tags_deleted,
            "bookmarksUpdated": self.bookmarks_updated,
            "details": [detail.to_dict() for detail in self.details],
        }


@dataclass
class SweepResult:
    deleted_jobs: int
    max_age_hours: float

    def to_dict(self) -> dict[str, Any]:
        return {"deletedJobs": self.deleted_jobs, "maxAgeHours": self.max_age_hours}
