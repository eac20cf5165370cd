"""FastAPI dependency injection — storage backend & admin session."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.services import get_listing_revisions, get_storage_backend
from app.services.auth import AdminSession, session_from_token
from app.services.metadata import MetadataResolver
from app.services.revisions import ListingRevisions
from app.storage import StorageBackend

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_storage() -> StorageBackend:
    """Current storage backend (overridden in tests)."""
    return get_storage_backend()


def get_revisions() -> ListingRevisions:
    return get_listing_revisions()


def get_resolver(storage: StorageBackend = Depends(get_storage)) -> MetadataResolver:
    return MetadataResolver.from_settings(storage, settings)


async def get_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AdminSession:
    """Session for this request: signed cookie first, then Bearer token."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token and credentials is not None:
        token = credentials.credentials
    return session_from_token(token)


async def require_admin(session: AdminSession = Depends(get_session)) -> AdminSession:
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin login required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
