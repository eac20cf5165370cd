"""Local filesystem backend — objects live under ``<upload_dir>/<folder>/<name>``."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator
from urllib.parse import quote

from app.storage.base import ByteStream, StorageBackend, StorageEntry, is_companion_key

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024  # 64 KB


class LocalStorageBackend(StorageBackend):
    """Files on disk, served same-origin under ``url_prefix``."""

    name = "local"

    def __init__(self, root: str | Path, url_prefix: str = "/media"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        root = self.root.resolve()
        if root not in path.parents:
            raise PermissionError(f"Key escapes storage root: {key}")
        return path

    async def list(self, folder: str) -> list[StorageEntry]:
        return await asyncio.to_thread(self._list_sync, folder)

    def _list_sync(self, folder: str) -> list[StorageEntry]:
        directory = self.root / folder
        directory.mkdir(parents=True, exist_ok=True)

        entries: list[StorageEntry] = []
        for path in directory.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            if is_companion_key(path.name):
                continue
            stat = path.stat()
            entries.append(
                StorageEntry(
                    key=f"{folder}/{path.name}",
                    name=path.name,
                    size=stat.st_size,
                    updated_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    content_type=mimetypes.guess_type(path.name)[0],
                )
            )
        return entries

    async def fetch_bytes(self, key: str) -> bytes:
        return await asyncio.to_thread(self._path(key).read_bytes)

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        path = self._path(key)
        await asyncio.to_thread(self._write, path, data)
        logger.debug("Wrote %s (%d bytes)", path, len(data))

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink)

    async def exists(self, key: str) -> bool:
        try:
            path = self._path(key)
        except PermissionError:
            return False
        return await asyncio.to_thread(path.is_file)

    async def signed_url(self, key: str, expiry_seconds: int) -> str:
        return f"{self.url_prefix}/{quote(key)}"

    async def open_stream(self, key: str, expiry_seconds: int | None = None) -> ByteStream:
        path = self._path(key)
        if not await asyncio.to_thread(path.is_file):
            raise FileNotFoundError(key)
        handle = await asyncio.to_thread(path.open, "rb")

        async def _chunks() -> AsyncIterator[bytes]:
            while chunk := await asyncio.to_thread(handle.read, CHUNK_SIZE):
                yield chunk

        async def _close() -> None:
            handle.close()

        return ByteStream(chunks=_chunks(), close=_close)
