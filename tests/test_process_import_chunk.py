"""Tests for processing an import one chunk at a time."""

from __future__ import annotations

import logging

import pytest

from app.application.use_cases.get_import_status import GetImportStatusUseCase
from app.application.use_cases.prepare_import import PrepareImportCommand, PrepareImportUseCase
from app.application.use_cases.process_import_chunk import (
    ProcessImportChunkCommand,
    ProcessImportChunkUseCase,
)
from app.domain.exceptions.domain_exceptions import (
    ImportJobNotFoundError,
    ImportJobOwnershipError,
    RemoteRepositoryError,
)
from app.domain.models.import_job import CandidateBookmark, ChunkStatus
from tests.conftest import OTHER_OWNER, OWNER, bookmark_record, make_candidates, tag_record


async def _prepare(job_repo, store, candidates, tags=()) -> str:
    result = await PrepareImportUseCase(job_repo, store).execute(
        PrepareImportCommand(
            owner=OWNER, format="netscape", candidates=candidates, tags=list(tags)
        )
    )
    return result.job_id


def _processor(job_repo, store) -> ProcessImportChunkUseCase:
    return ProcessImportChunkUseCase(job_repo, store, store)


@pytest.mark.asyncio
async def test_201_bookmarks_finish_in_two_calls(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(201))
    use_case = _processor(job_repo, store)

    first = await use_case.execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))
    assert first.chunk_processed
    assert not first.done
    assert first.imported == 200
    assert first.remaining == 1
    assert first.result is None
    assert len(store.write_calls) == 20
    assert all(len(batch) == 10 for batch in store.write_calls)

    second = await use_case.execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))
    assert second.chunk_processed
    assert second.done
    assert second.imported == 1
    assert second.total_imported == 201
    assert second.total_failed == 0
    assert second.remaining == 0
    assert second.result.to_dict() == {
        "total": 201,
        "skipped": 0,
        "imported": 201,
        "failed": 0,
        "format": "netscape",
    }


@pytest.mark.asyncio
async def test_failed_batch_only_fails_its_own_bookmarks(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(25))
    store.fail_write_calls = {1}

    result = await _processor(job_repo, store).execute(
        ProcessImportChunkCommand(owner=OWNER, job_id=job_id)
    )

    assert result.done
    assert result.imported == 15
    assert result.failed == 10
    assert result.result.failed == 10
    assert len(store.write_calls) == 3


@pytest.mark.asyncio
async def test_rejected_records_count_as_failed(job_repo, store) -> None:
    candidates = make_candidates(4)
    job_id = await _prepare(job_repo, store, candidates)
    store.rejected_urls = {candidates[2].url}

    result = await _processor(job_repo, store).execute(
        ProcessImportChunkCommand(owner=OWNER, job_id=job_id)
    )

    assert result.imported == 3
    assert result.failed == 1


@pytest.mark.asyncio
async def test_done_job_returns_final_result_without_writing(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(2))
    use_case = _processor(job_repo, store)
    await use_case.execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))
    writes_before = len(store.write_calls)

    again = await use_case.execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))

    assert not again.chunk_processed
    assert again.done
    assert again.total_imported == 2
    assert again.result.imported == 2
    assert len(store.write_calls) == writes_before


@pytest.mark.asyncio
async def test_other_owner_gets_ownership_error(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(2))

    with pytest.raises(ImportJobOwnershipError):
        await _processor(job_repo, store).execute(
            ProcessImportChunkCommand(owner=OTHER_OWNER, job_id=job_id)
        )
    assert store.write_calls == []


@pytest.mark.asyncio
async def test_unknown_job_is_not_found(job_repo, store) -> None:
    with pytest.raises(ImportJobNotFoundError):
        await _processor(job_repo, store).execute(
            ProcessImportChunkCommand(owner=OWNER, job_id="missing")
        )


@pytest.mark.asyncio
async def test_tags_resolve_to_existing_casing_and_new_ones_are_created_once(
    job_repo, store
) -> None:
    store.tags = [tag_record("Python")]
    candidates = [
        CandidateBookmark(url="https://a.example/", source_tags=("python", "Async")),
        CandidateBookmark(url="https://b.example/", source_tags=("ASYNC", "web")),
    ]
    job_id = await _prepare(job_repo, store, candidates, tags=["Imported"])

    await _processor(job_repo, store).execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))

    written = {w.url: w.tags for batch in store.write_calls for w in batch}
    assert written["https://a.example/"] == ("Python", "Async", "Imported")
    assert written["https://b.example/"] == ("Async", "web", "Imported")
    assert sorted(store.created_tags) == ["Async", "Imported", "web"]


@pytest.mark.asyncio
async def test_tag_create_failure_does_not_fail_the_chunk(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(3), tags=["Later"])
    store.fail_tag_creates = {"Later"}

    result = await _processor(job_repo, store).execute(
        ProcessImportChunkCommand(owner=OWNER, job_id=job_id)
    )

    assert result.imported == 3
    assert result.done


@pytest.mark.asyncio
async def test_missing_created_at_is_filled_in(job_repo, store) -> None:
    candidates = [
        CandidateBookmark(url="https://a.example/", created_at="2020-02-02T00:00:00Z"),
        CandidateBookmark(url="https://b.example/"),
    ]
    job_id = await _prepare(job_repo, store, candidates)

    await _processor(job_repo, store).execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))

    written = {w.url: w.created_at for w in store.write_calls[0]}
    assert written["https://a.example/"] == "2020-02-02T00:00:00Z"
    assert written["https://b.example/"].endswith("Z")


@pytest.mark.asyncio
async def test_unexpected_error_releases_claim_for_retry(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(15))
    store.crash_write_calls = {1}
    use_case = _processor(job_repo, store)

    with pytest.raises(RuntimeError):
        await use_case.execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))

    job = await job_repo.async_get_job(job_id)
    assert job.processed_chunks == 0
    assert job.imported == 0
    assert await job_repo.async_count_chunks(job_id, ChunkStatus.PENDING) == 1

    store.crash_write_calls = set()
    retried = await use_case.execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))
    assert retried.chunk_processed
    assert retried.done
    assert retried.total_imported == 15


@pytest.mark.asyncio
async def test_tag_listing_failure_releases_claim_and_propagates(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(2))
    store.list_tags_error = RemoteRepositoryError("listRecords failed", status_code=502)

    with pytest.raises(RemoteRepositoryError):
        await _processor(job_repo, store).execute(
            ProcessImportChunkCommand(owner=OWNER, job_id=job_id)
        )

    assert await job_repo.async_count_chunks(job_id, ChunkStatus.PENDING) == 1


@pytest.mark.asyncio
async def test_live_claim_elsewhere_reports_progress_without_processing(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(3))
    held = await job_repo.async_claim_next_chunk(job_id, claim_timeout_sec=300)
    assert held is not None

    result = await _processor(job_repo, store).execute(
        ProcessImportChunkCommand(owner=OWNER, job_id=job_id)
    )

    assert not result.chunk_processed
    assert not result.done
    assert result.remaining == 1
    assert store.write_calls == []


@pytest.mark.asyncio
async def test_status_tracks_chunks_and_ownership(job_repo, store) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(250))
    status = GetImportStatusUseCase(job_repo)

    before = await status.execute(OWNER, job_id)
    assert before.status == "pending"
    assert before.progress == 0
    assert before.remaining == 2

    await _processor(job_repo, store).execute(ProcessImportChunkCommand(owner=OWNER, job_id=job_id))

    during = await status.execute(OWNER, job_id)
    assert during.status == "processing"
    assert during.processed_chunks == 1
    assert during.imported == 200
    assert during.progress == 80

    with pytest.raises(ImportJobOwnershipError):
        await status.execute(OTHER_OWNER, job_id)
    with pytest.raises(ImportJobNotFoundError):
        await status.execute(OWNER, "missing-job")


@pytest.mark.asyncio
async def test_partial_duplicate_import_reports_both_counts(job_repo, store) -> None:
    store.bookmarks = [bookmark_record("https://example.com/old", rkey="existing")]
    job_id = await _prepare(
        job_repo,
        store,
        [
            CandidateBookmark(url="https://example.com/old?ref=feed"),
            CandidateBookmark(url="https://example.com/new"),
        ],
    )

    result = await _processor(job_repo, store).execute(
        ProcessImportChunkCommand(owner=OWNER, job_id=job_id)
    )

    assert result.done
    assert result.result.to_dict() == {
        "total": 2,
        "skipped": 1,
        "imported": 1,
        "failed": 0,
        "format": "netscape",
    }
    assert [w.url for batch in store.write_calls for w in batch] == ["https://example.com/new"]


@pytest.mark.asyncio
async def test_foreign_owner_lookup_is_logged_once(job_repo, store, caplog) -> None:
    job_id = await _prepare(job_repo, store, make_candidates(1))

    with caplog.at_level(logging.WARNING, logger="app.application.use_cases.get_import_status"):
        with pytest.raises(ImportJobOwnershipError):
            await GetImportStatusUseCase(job_repo).execute(OTHER_OWNER, job_id)

    mismatches = [r for r in caplog.records if r.getMessage() == "import_job_owner_mismatch"]
    assert len(mismatches) == 1
    assert mismatches[0].job_id == job_id
