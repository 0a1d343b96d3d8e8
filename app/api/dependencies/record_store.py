"""Record store dependency: an owner-scoped gateway per request."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request

from app.adapters.record_store import RecordStoreClient, RecordStoreGateway
from app.api.dependencies.identity import RepoIdentity, get_identity
from app.config import AppConfig


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


async def get_record_store(
    identity: RepoIdentity = Depends(get_identity),
    cfg: AppConfig = Depends(get_app_config),
) -> AsyncIterator[RecordStoreGateway]:
    """Yield a gateway whose HTTP client lives for the duration of the request."""
    store_cfg = cfg.record_store
    async with RecordStoreClient(
        store_cfg.service_url,
        identity.access_token,
        timeout=store_cfg.timeout_sec,
        max_retries=store_cfg.max_retries,
    ) as client:
        yield RecordStoreGateway(client, identity.owner, store_cfg)
