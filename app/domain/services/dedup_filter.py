"""Partition import candidates against an owner's existing bookmarks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from app.core.url_utils import canonical_url

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from app.domain.models.import_job import CandidateBookmark
    from app.domain.models.records import BookmarkRecord

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    """Outcome of deduplicating one batch of candidates.

    ``duplicates`` holds candidates whose canonical URL is already present,
    either in the repository or earlier in the same batch; ``rejected``
    holds candidates without a canonical form. Both count as skipped.
    """

    to_import: list[CandidateBookmark] = field(default_factory=list)
    duplicates: list[CandidateBookmark] = field(default_factory=list)
    rejected: list[CandidateBookmark] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.to_import) + len(self.duplicates) + len(self.rejected)

    @property
    def skipped(self) -> int:
        return len(self.duplicates) + len(self.rejected)


def existing_url_keys(records: Iterable[BookmarkRecord]) -> set[str]:
    """Canonical URLs of existing bookmark records; records without one are ignored."""
    keys: set[str] = set()
    for record in records:
        key = canonical_url(record.subject)
        if key is not None:
            keys.add(key)
    return keys


def partition_candidates(
    candidates: Sequence[CandidateBookmark],
    existing: Iterable[BookmarkRecord],
) -> DedupResult:
    """Split candidates into ``to_import`` and skipped, preserving input order.

    The first occurrence of a canonical URL within ``candidates`` wins.
    """
    seen = existing_url_keys(existing)
    result = DedupResult()

    for candidate in candidates:
        key = canonical_url(candidate.url)
        if key is None:
            result.rejected.append(candidate)
        elif key in seen:
            result.duplicates.append(candidate)
        else:
            seen.add(key)
            result.to_import.append(candidate)

    logger.debug(
        "dedup_partitioned",
        extra={
            "total": result.total,
            "to_import": len(result.to_import),
            "duplicates": len(result.duplicates),
            "rejected": len(result.rejected),
        },
    )
    return result
