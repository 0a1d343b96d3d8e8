"""Use case for expiring abandoned import jobs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.application.dto.import_dto import SweepResult
from app.core.time_utils import utc_cutoff

if TYPE_CHECKING:
    from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
        SqliteImportJobRepositoryAdapter,
    )

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_HOURS = 24


class SweepImportJobsUseCase:
    """Delete jobs, and their chunks, created more than ``max_age_hours`` ago.

    Status is ignored: completed jobs and abandoned ones age out alike.
    """

    def __init__(self, job_repository: SqliteImportJobRepositoryAdapter) -> None:
        self._jobs = job_repository

    async def execute(self, max_age_hours: float = DEFAULT_MAX_AGE_HOURS) -> SweepResult:
        if max_age_hours <= 0:
            msg = "max_age_hours must be positive"
            raise ValueError(msg)

        cutoff = utc_cutoff(hours=max_age_hours)
        deleted = await self._jobs.async_delete_jobs_older_than(cutoff)
        logger.info(
            "import_jobs_swept",
            extra={"deleted_jobs": deleted, "max_age_hours": max_age_hours},
        )
        return SweepResult(deleted_jobs=deleted, max_age_hours=max_age_hours)
