"""Tests for preparing a chunked import."""

from __future__ import annotations

import pytest

from app.application.use_cases.prepare_import import PrepareImportCommand, PrepareImportUseCase
from app.domain.exceptions.domain_exceptions import ValidationError
from app.domain.models.import_job import CandidateBookmark, ChunkStatus
from tests.conftest import OWNER, bookmark_record, make_candidates, tag_record


def _command(candidates, **kwargs) -> PrepareImportCommand:
    return PrepareImportCommand(owner=OWNER, format="netscape", candidates=candidates, **kwargs)


@pytest.mark.asyncio
async def test_201_new_bookmarks_make_two_chunks(job_repo, store) -> None:
    result = await PrepareImportUseCase(job_repo, store).execute(_command(make_candidates(201)))

    assert result.total == 201
    assert result.skipped == 0
    assert result.to_import == 201
    assert result.total_chunks == 2
    assert result.job_id is not None
    assert result.result is None
    assert await job_repo.async_count_chunks(result.job_id, ChunkStatus.PENDING) == 2


@pytest.mark.asyncio
async def test_all_duplicates_returns_final_result_without_job(job_repo, store) -> None:
    store.bookmarks = [bookmark_record("https://example.com/page/0", rkey="x")]
    candidates = [
        CandidateBookmark(url="https://EXAMPLE.com/page/0?utm=1"),
        CandidateBookmark(url="ftp://example.com/file"),
    ]

    result = await PrepareImportUseCase(job_repo, store).execute(_command(candidates))

    assert result.job_id is None
    assert result.total_chunks == 0
    assert result.result is not None
    assert result.result.to_dict() == {
        "total": 2,
        "skipped": 2,
        "imported": 0,
        "failed": 0,
        "format": "netscape",
    }
    assert await job_repo.async_delete_active_jobs(OWNER) == 0


@pytest.mark.asyncio
async def test_duplicates_are_counted_as_skipped(job_repo, store) -> None:
    store.bookmarks = [bookmark_record("https://example.com/page/1", rkey="x")]

    result = await PrepareImportUseCase(job_repo, store).execute(_command(make_candidates(3)))

    assert result.total == 3
    assert result.skipped == 1
    assert result.to_import == 2
    assert result.total_chunks == 1


@pytest.mark.asyncio
async def test_uniform_tags_take_existing_casing(job_repo, store) -> None:
    store.tags = [tag_record("Reading")]

    result = await PrepareImportUseCase(job_repo, store).execute(
        _command(make_candidates(1), tags=["reading", " Later ", "READING", ""])
    )

    job = await job_repo.async_get_job(result.job_id)
    assert job.tags == ["Reading", "Later"]


@pytest.mark.asyncio
async def test_blank_tags_skip_tag_listing(job_repo, store) -> None:
    await PrepareImportUseCase(job_repo, store).execute(_command(make_candidates(1), tags=[" "]))
    assert store.list_tags_calls == 0


@pytest.mark.asyncio
async def test_second_prepare_replaces_active_job(job_repo, store) -> None:
    use_case = PrepareImportUseCase(job_repo, store)
    first = await use_case.execute(_command(make_candidates(5)))
    second = await use_case.execute(_command(make_candidates(5, prefix="https://other.example")))

    assert await job_repo.async_get_job(first.job_id) is None
    assert await job_repo.async_get_job(second.job_id) is not None


def test_empty_candidates_are_rejected() -> None:
    with pytest.raises(ValidationError):
        _command([])


def test_missing_format_is_rejected() -> None:
    with pytest.raises(ValidationError):
        PrepareImportCommand(owner=OWNER, format=" ", candidates=make_candidates(1))


def test_too_many_candidates_are_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _command(make_candidates(3), max_candidates=2)
    assert exc_info.value.details == {"count": 3, "max": 2}
