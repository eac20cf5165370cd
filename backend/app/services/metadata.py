"""Metadata resolver — turns raw storage entries into gallery ``FileMetadata``.

Each entry walks a cascade, first match wins:

1. companion JSON carries ``externalUrl``
2. the key ends in ``.link`` and its body holds a URL
3. the entry is tiny (or text) and its body holds a URL
4. otherwise it is real stored bytes

Every probe is bounded by a semaphore and a timeout, and a failure in one
entry only degrades that entry.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Iterable
from urllib.parse import quote

from pydantic import ValidationError

from app.config import Settings
from app.schemas.files import CompanionMetadata, FileMetadata
from app.services.placeholders import extract_external_url
from app.storage import FOLDER_CATEGORIES, StorageBackend, StorageEntry, companion_key
from app.utils.files import (
    EXTERNAL_SIZE_LABEL,
    format_date,
    format_datetime,
    format_size_label,
    is_link_name,
    strip_link_suffix,
    to_epoch_ms,
)
from app.utils.hashing import mock_location

logger = logging.getLogger(__name__)

PROXY_ENDPOINT = "/api/storage"


def proxy_path_for(key: str, endpoint: str = PROXY_ENDPOINT) -> str:
    return f"{endpoint}?file={quote(key, safe='/')}"


async def read_companion(backend: StorageBackend, key: str) -> CompanionMetadata | None:
    """Best-effort sidecar read; absent or malformed JSON yields ``None``."""
    try:
        raw = await backend.fetch_text(companion_key(key))
    except FileNotFoundError:
        return None
    except Exception as exc:
        logger.debug("Companion metadata unreadable for %s: %s", key, exc)
        return None
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            return None
        return CompanionMetadata.model_validate(data)
    except (ValueError, ValidationError) as exc:
        logger.debug("Companion metadata malformed for %s: %s", key, exc)
        return None


class MetadataResolver:
    """Resolves listings for one storage backend."""

    def __init__(
        self,
        backend: StorageBackend,
        *,
        signed_url_expiry: int = 3600,
        probe_max_bytes: int = 4096,
        probe_timeout: float = 5.0,
        probe_concurrency: int = 8,
        proxy_endpoint: str = PROXY_ENDPOINT,
    ):
        self.backend = backend
        self.signed_url_expiry = signed_url_expiry
        self.probe_max_bytes = probe_max_bytes
        self.probe_timeout = probe_timeout
        self.probe_concurrency = max(1, probe_concurrency)
        self.proxy_endpoint = proxy_endpoint

    @classmethod
    def from_settings(cls, backend: StorageBackend, settings: Settings) -> "MetadataResolver":
        return cls(
            backend,
            signed_url_expiry=settings.signed_url_expiry_seconds,
            probe_max_bytes=settings.probe_max_bytes,
            probe_timeout=settings.probe_timeout_seconds,
            probe_concurrency=settings.probe_concurrency,
            proxy_endpoint=f"{settings.api_prefix}/storage",
        )

    async def list_files(self, folder: str) -> list[FileMetadata]:
        """All entries of *folder*, newest first.

        Backend listing errors propagate; per-entry errors do not.
        """
        if folder not in FOLDER_CATEGORIES:
            raise ValueError(f"Unknown folder: {folder}")

        entries = await self.backend.list(folder)
        semaphore = asyncio.Semaphore(self.probe_concurrency)
        files = await asyncio.gather(
            *(self._resolve_safely(entry, folder, semaphore) for entry in entries)
        )
        return sorted(files, key=lambda f: f.mtime_ms, reverse=True)

    async def _bounded(self, semaphore: asyncio.Semaphore, coro):
        async with semaphore:
            return await asyncio.wait_for(coro, timeout=self.probe_timeout)

    async def _probe_url(self, entry: StorageEntry, semaphore: asyncio.Semaphore) -> str | None:
        """Fetch the body and look for a placeholder URL; errors mean 'no'."""
        try:
            text = await self._bounded(semaphore, self.backend.fetch_text(entry.key))
        except UnicodeDecodeError:
            return None
        except Exception as exc:
            logger.debug("Placeholder probe failed for %s: %s", entry.key, exc)
            return None
        return extract_external_url(text)

    def _should_probe(self, entry: StorageEntry) -> bool:
        if entry.size <= 0:
            return False
        if entry.size < self.probe_max_bytes:
            return True
        return (entry.content_type or "").lower().startswith("text/")

    async def _resolve_safely(
        self, entry: StorageEntry, folder: str, semaphore: asyncio.Semaphore
    ) -> FileMetadata:
        try:
            return await self.resolve(entry, folder, semaphore)
        except Exception as exc:
            logger.warning("Metadata resolution failed for %s: %s", entry.key, exc)
            return self._build(entry, folder, None, proxy_path_for(entry.key, self.proxy_endpoint))

    async def resolve(
        self,
        entry: StorageEntry,
        folder: str,
        semaphore: asyncio.Semaphore | None = None,
    ) -> FileMetadata:
        semaphore = semaphore or asyncio.Semaphore(self.probe_concurrency)

        try:
            companion = await self._bounded(semaphore, read_companion(self.backend, entry.key))
        except Exception as exc:
            logger.debug("Companion lookup timed out for %s: %s", entry.key, exc)
            companion = None

        external: str | None = None
        if companion and companion.external_url:
            external = companion.external_url
        elif is_link_name(entry.name):
            external = await self._probe_url(entry, semaphore)
        elif self._should_probe(entry):
            external = await self._probe_url(entry, semaphore)

        if external:
            return self._build(entry, folder, companion, external, external=True)

        try:
            resolved = await self.backend.signed_url(entry.key, self.signed_url_expiry)
        except Exception as exc:
            logger.warning("Could not sign %s, falling back to proxy: %s", entry.key, exc)
            resolved = proxy_path_for(entry.key, self.proxy_endpoint)
        return self._build(entry, folder, companion, resolved)

    def _build(
        self,
        entry: StorageEntry,
        folder: str,
        companion: CompanionMetadata | None,
        resolved_path: str,
        external: bool = False,
    ) -> FileMetadata:
        category = FOLDER_CATEGORIES[folder]
        fallback_name = strip_link_suffix(entry.name) if external else entry.name
        display_name = (companion.display_name if companion else None) or fallback_name

        meta = FileMetadata(
            display_name=display_name,
            stored_name=entry.name,
            size_label=EXTERNAL_SIZE_LABEL if external else format_size_label(entry.size),
            last_modified=format_date(entry.updated_at),
            mtime_ms=to_epoch_ms(entry.updated_at),
            description=companion.description if companion else None,
            category=category,
            resolved_path=resolved_path,
            proxy_path=None if external else proxy_path_for(entry.key, self.proxy_endpoint),
            is_external=external,
        )
        if category == "image":
            # Mock EXIF: no real image metadata is read
            meta.capture_date = format_datetime(entry.updated_at) or None
            meta.location = mock_location(entry.name)
        return meta


def filter_files(files: Iterable[FileMetadata], query: str | None) -> list[FileMetadata]:
    """Case-insensitive search over names and description."""
    files = list(files)
    needle = (query or "").strip().lower()
    if not needle:
        return files
    return [
        f for f in files
        if needle in f.display_name.lower()
        or needle in f.stored_name.lower()
        or needle in (f.description or "").lower()
    ]
