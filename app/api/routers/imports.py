"""
Bookmark import endpoints.

A client prepares an import once, then calls ``process`` repeatedly until
the response reports ``done``.
"""

from fastapi import APIRouter, Depends, Request

from app.adapters.record_store import RecordStoreGateway
from app.api.dependencies.database import get_import_job_repository
from app.api.dependencies.identity import RepoIdentity, get_identity
from app.api.dependencies.record_store import get_app_config, get_record_store
from app.api.models.requests import PrepareImportRequest
from app.api.models.responses import success_response
from app.application.use_cases.get_import_status import GetImportStatusUseCase
from app.application.use_cases.prepare_import import (
    PrepareImportCommand,
    PrepareImportUseCase,
)
from app.application.use_cases.process_import_chunk import (
    ProcessImportChunkCommand,
    ProcessImportChunkUseCase,
)
from app.config import AppConfig
from app.core.logging_utils import get_logger
from app.infrastructure.persistence.sqlite.repositories.import_job_repository import (
    SqliteImportJobRepositoryAdapter,
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("")
async def prepare_import(
    payload: PrepareImportRequest,
    request: Request,
    identity: RepoIdentity = Depends(get_identity),
    jobs: SqliteImportJobRepositoryAdapter = Depends(get_import_job_repository),
    gateway: RecordStoreGateway = Depends(get_record_store),
    cfg: AppConfig = Depends(get_app_config),
):
    """
    Deduplicate the candidates and create an import job.

    When nothing is left to import the response carries the final ``result``
    and no ``jobId``.
    """
    command = PrepareImportCommand(
        owner=identity.owner,
        format=payload.format,
        candidates=[candidate.to_domain() for candidate in payload.candidates],
        tags=payload.tags,
        max_candidates=cfg.imports.max_candidates,
    )
    result = await PrepareImportUseCase(jobs, gateway).execute(command)
    return success_response(
        result.to_dict(), correlation_id=getattr(request.state, "correlation_id", None)
    )


@router.post("/{job_id}/process")
async def process_import_chunk(
    job_id: str,
    request: Request,
    identity: RepoIdentity = Depends(get_identity),
    jobs: SqliteImportJobRepositoryAdapter = Depends(get_import_job_repository),
    gateway: RecordStoreGateway = Depends(get_record_store),
    cfg: AppConfig = Depends(get_app_config),
):
    """Process the next chunk of the job."""
    use_case = ProcessImportChunkUseCase(
        jobs,
        gateway,
        gateway,
        claim_timeout_sec=cfg.imports.chunk_claim_timeout_sec,
    )
    result = await use_case.execute(ProcessImportChunkCommand(owner=identity.owner, job_id=job_id))
    return success_response(
        result.to_dict(), correlation_id=getattr(request.state, "correlation_id", None)
    )


@router.get("/{job_id}")
async def get_import_status(
    job_id: str,
    request: Request,
    identity: RepoIdentity = Depends(get_identity),
    jobs: SqliteImportJobRepositoryAdapter = Depends(get_import_job_repository),
):
    """Report a job's counters and percentage progress."""
    status = await GetImportStatusUseCase(jobs).execute(identity.owner, job_id)
    return success_response(
        status.to_dict(), correlation_id=getattr(request.state, "correlation_id", None)
    )
