"""Tests for the background scheduler."""

from __future__ import annotations

import pytest

from app.config import load_config
from app.services.scheduler import IMPORT_SWEEP_JOB_ID, SchedulerService


@pytest.mark.asyncio
async def test_sweep_job_is_scheduled_when_enabled(db, monkeypatch) -> None:
    monkeypatch.delenv("IMPORT_SWEEP_ENABLED", raising=False)
    scheduler = SchedulerService(load_config(imports={"sweep_interval_minutes": 15}), db)

    await scheduler.start()
    try:
        assert scheduler.is_running
        assert scheduler.get_next_run_time(IMPORT_SWEEP_JOB_ID) is not None
    finally:
        await scheduler.stop()

    assert not scheduler.is_running
    assert scheduler.get_next_run_time(IMPORT_SWEEP_JOB_ID) is None


@pytest.mark.asyncio
async def test_sweep_job_is_skipped_when_disabled(db) -> None:
    scheduler = SchedulerService(load_config(imports={"sweep_enabled": False}), db)

    await scheduler.start()
    try:
        assert scheduler.get_next_run_time(IMPORT_SWEEP_JOB_ID) is None
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_run_import_sweep_uses_configured_age(db) -> None:
    scheduler = SchedulerService(load_config(imports={"job_max_age_hours": 12}), db)

    result = await scheduler.run_import_sweep()

    assert result is not None
    assert result.deleted_jobs == 0
    assert result.max_age_hours == 12
