"""Caller identity dependency.

Every request acts on behalf of one repository owner. The owner is named by
the ``X-Repo-Owner`` header and authenticated by the bearer token, which is
forwarded as-is to the owner's record store.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.exceptions import AuthenticationError
from app.core.logging_utils import get_logger

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RepoIdentity:
    owner: str
    access_token: str


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    repo_owner: str | None = Header(default=None, alias="X-Repo-Owner"),
) -> RepoIdentity:
    """Resolve the caller, rejecting the request before any job store access.

    Raises:
        AuthenticationError: If the token or the owner header is missing.
    """
    token = credentials.credentials.strip() if credentials else ""
    owner = (repo_owner or "").strip()
    if not token or not owner:
        logger.info(
            "identity_missing",
            extra={"has_token": bool(token), "has_owner": bool(owner)},
        )
        raise AuthenticationError()
    return RepoIdentity(owner=owner, access_token=token)
