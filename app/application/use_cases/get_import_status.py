"""Use case for inspecting an import job's progress."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.application.dto.import_dto import ImportStatusDTO
from app.domain.exceptions.domain_exceptions import (
    ImportJobNotFoundError,
    ImportJobOwnershipError,
)

if TYPE_CHECKING:
    from app.domain.models.import_job import ImportJob
    from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
        SqliteImportJobRepositoryAdapter,
    )

logger = logging.getLogger(__name__)


async def load_owned_job(
    jobs: SqliteImportJobRepositoryAdapter, job_id: str, owner: str
) -> ImportJob:
    """Fetch a job and verify it belongs to ``owner``.

    Raises:
        ImportJobNotFoundError: If no job has this ID.
        ImportJobOwnershipError: If the job was created by another owner.
    """
    job = await jobs.async_get_job(job_id)
    if job is None:
        raise ImportJobNotFoundError(job_id)
    try:
        job.ensure_owned_by(owner)
    except ImportJobOwnershipError:
        logger.warning(
            "import_job_owner_mismatch",
            extra={"job_id": job_id, "owner": owner},
        )
        raise
    return job


class GetImportStatusUseCase:
    def __init__(self, job_repository: SqliteImportJobRepositoryAdapter) -> None:
        self._jobs = job_repository

    async def execute(self, owner: str, job_id: str) -> ImportStatusDTO:
        job = await load_owned_job(self._jobs, job_id, owner)
        return ImportStatusDTO.from_job(job)
