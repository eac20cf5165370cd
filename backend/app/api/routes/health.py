"""Health check and ping."""

import logging

from fastapi import APIRouter, Depends

from app import __version__
from app.api.deps import get_revisions, get_storage
from app.config import settings
from app.schemas.system import HealthResponse
from app.services.revisions import ListingRevisions
from app.storage import FOLDERS, StorageBackend

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    storage: StorageBackend = Depends(get_storage),
    revisions: ListingRevisions = Depends(get_revisions),
):
    """Storage reachability plus the current listing revision per folder."""
    status = "ok"
    try:
        await storage.list(FOLDERS[0])
    except Exception as exc:
        logger.warning("Health check: storage unreachable: %s", exc)
        status = "degraded"
    return HealthResponse(
        status=status,
        version=__version__,
        storage_backend=settings.storage_backend,
        revisions={folder: revisions.get(folder) for folder in FOLDERS},
    )


@router.get("/ping")
async def ping():
    return {"status": "ok"}
