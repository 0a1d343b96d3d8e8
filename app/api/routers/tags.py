"""
Tag maintenance endpoints.
"""

from fastapi import APIRouter, Depends, Request

from app.adapters.record_store import RecordStoreGateway
from app.api.dependencies.identity import RepoIdentity, get_identity
from app.api.dependencies.record_store import get_record_store
from app.api.models.responses import success_response
from app.application.use_cases.merge_duplicate_tags import (
    MergeDuplicateTagsCommand,
    MergeDuplicateTagsUseCase,
)

router = APIRouter()


@router.post("/merge-duplicates")
async def merge_duplicate_tags(
    request: Request,
    identity: RepoIdentity = Depends(get_identity),
    gateway: RecordStoreGateway = Depends(get_record_store),
):
    """Collapse tags that differ only in casing onto the earliest-created one."""
    result = await MergeDuplicateTagsUseCase(gateway, gateway).execute(
        MergeDuplicateTagsCommand(owner=identity.owner)
    )
    return success_response(
        result.to_dict(), correlation_id=getattr(request.state, "correlation_id", None)
    )
