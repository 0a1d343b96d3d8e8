"""Tests for the SQLite import job store."""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.core.time_utils import utc_now
from app.db.models import ImportChunk, ImportJob
from app.domain.models.import_job import ChunkStatus, ImportStatus, split_into_chunks
from tests.conftest import OTHER_OWNER, OWNER, make_candidates


async def _create(job_repo, count: int = 250, owner: str = OWNER, **kwargs):
    chunks = split_into_chunks(make_candidates(count), 200)
    return await job_repo.async_create_job(
        owner=owner,
        format="netscape",
        total=count,
        skipped=0,
        tags=kwargs.pop("tags", ["Imported"]),
        chunks=chunks,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_create_persists_job_and_chunks(job_repo) -> None:
    job = await _create(job_repo)

    stored = await job_repo.async_get_job(job.id)
    assert stored is not None
    assert stored.owner == OWNER
    assert stored.total_chunks == 2
    assert stored.tags == ["Imported"]
    assert stored.status is ImportStatus.PENDING
    assert stored.created_at is not None
    assert await job_repo.async_count_chunks(job.id) == 2
    assert await job_repo.async_count_chunks(job.id, ChunkStatus.PENDING) == 2


@pytest.mark.asyncio
async def test_new_job_replaces_owners_active_job(job_repo) -> None:
    first = await _create(job_repo)
    other = await _create(job_repo, owner=OTHER_OWNER)
    second = await _create(job_repo)

    assert await job_repo.async_get_job(first.id) is None
    assert await job_repo.async_count_chunks(first.id) == 0
    assert await job_repo.async_get_job(second.id) is not None
    assert await job_repo.async_get_job(other.id) is not None
    assert await job_repo.async_delete_active_jobs(OWNER) == 1
    assert await job_repo.async_get_job(second.id) is None


@pytest.mark.asyncio
async def test_claims_are_sequential_and_exclusive(job_repo) -> None:
    job = await _create(job_repo)

    chunk = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)
    assert chunk is not None
    assert chunk.chunk_index == 0
    assert len(chunk.bookmarks) == 200
    assert chunk.claim_token

    # Chunk 0 is under a live claim, so nothing else can be taken
    assert await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300) is None

    applied, updated = await job_repo.async_complete_chunk(
        chunk_id=chunk.id, job_id=job.id, claim_token=chunk.claim_token, imported=198, failed=2
    )
    assert applied
    assert updated.processed_chunks == 1
    assert updated.imported == 198
    assert updated.failed == 2
    assert updated.status is ImportStatus.PROCESSING

    last = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)
    assert last.chunk_index == 1
    assert [b.url for b in last.bookmarks] == [f"https://example.com/page/{i}" for i in range(200, 250)]

    applied, updated = await job_repo.async_complete_chunk(
        chunk_id=last.id, job_id=job.id, claim_token=last.claim_token, imported=50, failed=0
    )
    assert applied
    assert updated.status is ImportStatus.COMPLETED
    assert updated.is_done
    assert await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300) is None


@pytest.mark.asyncio
async def test_completion_with_stale_token_changes_nothing(job_repo) -> None:
    job = await _create(job_repo, count=10)
    chunk = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)

    applied, current = await job_repo.async_complete_chunk(
        chunk_id=chunk.id, job_id=job.id, claim_token="not-the-token", imported=10, failed=0
    )

    assert not applied
    assert current.processed_chunks == 0
    assert current.imported == 0
    assert await job_repo.async_count_chunks(job.id, ChunkStatus.PROCESSING) == 1


@pytest.mark.asyncio
async def test_expired_claim_can_be_taken_over_once(job_repo) -> None:
    job = await _create(job_repo, count=10)
    stale = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)
    ImportChunk.update({ImportChunk.claimed_at: utc_now() - timedelta(minutes=10)}).where(
        ImportChunk.id == stale.id
    ).execute()

    fresh = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)
    assert fresh is not None
    assert fresh.id == stale.id
    assert fresh.claim_token != stale.claim_token

    applied, _ = await job_repo.async_complete_chunk(
        chunk_id=fresh.id, job_id=job.id, claim_token=fresh.claim_token, imported=10, failed=0
    )
    late, current = await job_repo.async_complete_chunk(
        chunk_id=stale.id, job_id=job.id, claim_token=stale.claim_token, imported=10, failed=0
    )
    assert applied
    assert not late
    assert current.imported == 10
    assert current.processed_chunks == 1


@pytest.mark.asyncio
async def test_released_chunk_is_claimable_again(job_repo) -> None:
    job = await _create(job_repo, count=10)
    chunk = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)

    assert await job_repo.async_release_chunk(chunk_id=chunk.id, claim_token=chunk.claim_token)
    assert not await job_repo.async_release_chunk(chunk_id=chunk.id, claim_token=chunk.claim_token)

    again = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)
    assert again.id == chunk.id


@pytest.mark.asyncio
async def test_sweep_deletes_old_jobs_regardless_of_status(job_repo) -> None:
    old = await _create(job_repo, count=5, owner=OTHER_OWNER)
    recent = await _create(job_repo, count=5)
    ImportJob.update({ImportJob.created_at: utc_now() - timedelta(hours=30)}).where(
        ImportJob.id == old.id
    ).execute()

    deleted = await job_repo.async_delete_jobs_older_than(utc_now() - timedelta(hours=24))

    assert deleted == 1
    assert await job_repo.async_get_job(old.id) is None
    assert await job_repo.async_count_chunks(old.id) == 0
    assert await job_repo.async_get_job(recent.id) is not None


@pytest.mark.asyncio
async def test_delete_active_jobs_keeps_completed(job_repo) -> None:
    job = await _create(job_repo, count=3)
    chunk = await job_repo.async_claim_next_chunk(job.id, claim_timeout_sec=300)
    await job_repo.async_complete_chunk(
        chunk_id=chunk.id, job_id=job.id, claim_token=chunk.claim_token, imported=3, failed=0
    )
    pending = await _create(job_repo, count=3, replace_active=False)

    assert await job_repo.async_delete_active_jobs(OWNER) == 1
    assert await job_repo.async_get_job(job.id) is not None
    assert await job_repo.async_get_job(pending.id) is None
