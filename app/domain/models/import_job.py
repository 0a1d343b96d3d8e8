"""Import job domain model.

An import job is an externally-paced state machine: the candidate bookmarks
that survived deduplication are split into fixed-size chunks at creation
time, and every ``process`` call advances the job by exactly one chunk.
Job-level counters are a fold over the per-chunk outcomes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from app.domain.exceptions.domain_exceptions import (
    ImportJobOwnershipError,
    InvalidStateTransitionError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

# Contract constants: 201 candidates always produce two chunks (200 + 1)
CHUNK_SIZE = 200
WRITE_BATCH_SIZE = 10


class ImportStatus(str, Enum):
    """Status of an import job in its lifecycle."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"

    @classmethod
    def active(cls) -> tuple[ImportStatus, ...]:
        return (cls.PENDING, cls.PROCESSING)


class ChunkStatus(str, Enum):
    """Status of a single chunk.

    ``processing`` marks a claimed chunk whose outcome is not recorded yet.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"


@dataclass(frozen=True)
class CandidateBookmark:
    """A normalized bookmark produced by an export-file parser."""

    url: str
    title: str = ""
    description: str | None = None
    created_at: str | None = None
    source_tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "created_at": self.created_at,
            "source_tags": list(self.source_tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CandidateBookmark:
        return cls(
            url=str(data["url"]),
            title=str(data.get("title") or ""),
            description=data.get("description"),
            created_at=data.get("created_at"),
            source_tags=tuple(data.get("source_tags") or ()),
        )


def chunk_count(to_import: int, size: int = CHUNK_SIZE) -> int:
    """Number of chunks needed for ``to_import`` bookmarks."""
    return math.ceil(to_import / size) if to_import > 0 else 0


def split_into_chunks(items: Sequence[Any], size: int = CHUNK_SIZE) -> list[list[Any]]:
    """Split ``items`` into consecutive slices of at most ``size`` elements."""
    if size <= 0:
        msg = "size must be positive"
        raise ValueError(msg)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


@dataclass(frozen=True)
class ChunkOutcome:
    """Result of writing one chunk to the remote repository."""

    imported: int = 0
    failed: int = 0

    def __add__(self, other: ChunkOutcome) -> ChunkOutcome:
        return ChunkOutcome(self.imported + other.imported, self.failed + other.failed)


@dataclass(frozen=True)
class ImportSummary:
    """Final result of an import, identical in shape for one or many chunks."""

    total: int
    skipped: int
    imported: int
    failed: int
    format: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "skipped": self.skipped,
            "imported": self.imported,
            "failed": self.failed,
            "format": self.format,
        }


@dataclass(frozen=True)
class ImportProgress:
    """Cumulative progress of a job, built by folding chunk outcomes."""

    total_chunks: int
    processed_chunks: int = 0
    total_imported: int = 0
    total_failed: int = 0

    @property
    def remaining(self) -> int:
        return max(self.total_chunks - self.processed_chunks, 0)

    @property
    def done(self) -> bool:
        return self.remaining == 0

    def fold(self, outcome: ChunkOutcome) -> ImportProgress:
        """Return the progress after one more chunk has been processed."""
        if self.done:
            msg = "Cannot fold a chunk outcome into a finished import"
            raise InvalidStateTransitionError(msg, details={"total_chunks": self.total_chunks})
        return ImportProgress(
            total_chunks=self.total_chunks,
            processed_chunks=self.processed_chunks + 1,
            total_imported=self.total_imported + outcome.imported,
            total_failed=self.total_failed + outcome.failed,
        )

    @classmethod
    def from_outcomes(cls, total_chunks: int, outcomes: Iterable[ChunkOutcome]) -> ImportProgress:
        progress = cls(total_chunks=total_chunks)
        for outcome in outcomes:
            progress = progress.fold(outcome)
        return progress


@dataclass
class ImportJob:
    """Durable state of one import, owned by exactly one repository owner."""

    id: str
    owner: str
    format: str
    total: int
    skipped: int
    total_chunks: int
    imported: int = 0
    failed: int = 0
    processed_chunks: int = 0
    tags: list[str] = field(default_factory=list)
    status: ImportStatus = ImportStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def to_import(self) -> int:
        return self.total - self.skipped

    @property
    def is_done(self) -> bool:
        return self.processed_chunks >= self.total_chunks

    def is_owned_by(self, owner: str) -> bool:
        return self.owner == owner

    def ensure_owned_by(self, owner: str) -> None:
        """Raise ImportJobOwnershipError unless ``owner`` created this job."""
        if not self.is_owned_by(owner):
            raise ImportJobOwnershipError(self.id)

    def progress(self) -> ImportProgress:
        return ImportProgress(
            total_chunks=self.total_chunks,
            processed_chunks=self.processed_chunks,
            total_imported=self.imported,
            total_failed=self.failed,
        )

    def progress_percent(self) -> int:
        """Share of candidates already accounted for, as a rounded percentage."""
        if self.total <= 0:
            return 100
        return round((self.imported + self.failed + self.skipped) / self.total * 100)

    def summary(self) -> ImportSummary:
        return ImportSummary(
            total=self.total,
            skipped=self.skipped,
            imported=self.imported,
            failed=self.failed,
            format=self.format,
        )


@dataclass
class ImportChunk:
    """A claimed or pending slice of an import job."""

    id: int
    job_id: str
    chunk_index: int
    bookmarks: list[CandidateBookmark]
    status: ChunkStatus = ChunkStatus.PENDING
    claim_token: str | None = None

    def __len__(self) -> int:
        return len(self.bookmarks)
