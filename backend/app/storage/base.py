"""Storage backend contract shared by the local and bucket variants."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable

# Storage folder -> item category
FOLDER_CATEGORIES: dict[str, str] = {
    "images": "image",
    "videos": "video",
    "documents": "document",
    "audios": "audio",
}
FOLDERS = tuple(FOLDER_CATEGORIES)

COMPANION_SUFFIX = ".json"


def make_key(folder: str, name: str) -> str:
    return f"{folder}/{name}"


def companion_key(key: str) -> str:
    """Key of the sidecar metadata file for *key*."""
    return f"{key}{COMPANION_SUFFIX}"


def is_companion_key(key: str) -> bool:
    return key.lower().endswith(COMPANION_SUFFIX)


@dataclass(frozen=True)
class StorageEntry:
    """One raw object under a folder, as reported by the backend."""
    key: str
    name: str
    size: int
    updated_at: datetime | None = None
    content_type: str | None = None


async def _noop_close() -> None:
    return None


@dataclass
class ByteStream:
    """Chunked content of a stored object, closed after the response is sent."""
    chunks: AsyncIterator[bytes]
    content_type: str | None = None
    close: Callable[[], Awaitable[None]] = field(default=_noop_close)


class StorageBackend(abc.ABC):
    """List, read, write and delete stored objects by key.

    Backend-specific failures are translated to ``FileNotFoundError``
    (missing key) and ``PermissionError`` (access denied); anything else
    propagates unchanged.
    """

    name: str = "base"

    @abc.abstractmethod
    async def list(self, folder: str) -> list[StorageEntry]:
        """Entries directly under *folder*, excluding companion ``.json`` keys."""

    @abc.abstractmethod
    async def fetch_bytes(self, key: str) -> bytes:
        ...

    async def fetch_text(self, key: str) -> str:
        data = await self.fetch_bytes(key)
        return data.decode("utf-8")

    @abc.abstractmethod
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        ...

    @abc.abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abc.abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abc.abstractmethod
    async def signed_url(self, key: str, expiry_seconds: int) -> str:
        """Time-limited URL for bucket objects, static path for local files."""

    @abc.abstractmethod
    async def open_stream(self, key: str, expiry_seconds: int | None = None) -> ByteStream:
        ...
