"""Service singletons — storage backend and listing revisions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.config import settings
from app.services.revisions import ListingRevisions

if TYPE_CHECKING:
    from app.storage import StorageBackend

logger = logging.getLogger(__name__)

_storage_backend: StorageBackend | None = None
_listing_revisions = ListingRevisions()


async def init_services() -> None:
    """Create the configured storage backend."""
    global _storage_backend

    from app.storage import FOLDERS, create_storage_backend
    from app.storage.local import LocalStorageBackend

    _storage_backend = create_storage_backend(settings)
    if isinstance(_storage_backend, LocalStorageBackend):
        for folder in FOLDERS:
            (_storage_backend.root / folder).mkdir(parents=True, exist_ok=True)
    logger.info("Storage backend initialized (%s)", _storage_backend.name)


async def shutdown_services() -> None:
    global _storage_backend
    _storage_backend = None


def get_storage_backend() -> StorageBackend:
    if _storage_backend is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _storage_backend


def get_listing_revisions() -> ListingRevisions:
    return _listing_revisions
