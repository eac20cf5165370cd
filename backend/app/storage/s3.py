"""S3-compatible bucket backend (AWS, R2, MinIO, Supabase storage)."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from typing import Any

import httpx
from botocore.exceptions import ClientError

from app.storage.base import ByteStream, StorageBackend, StorageEntry, is_companion_key

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_DENIED_CODES = {"403", "AccessDenied", "Forbidden"}


def _translate(exc: ClientError, key: str) -> Exception:
    """Map a botocore error to the built-in the callers understand."""
    code = str(exc.response.get("Error", {}).get("Code", ""))
    if code in _MISSING_CODES:
        return FileNotFoundError(key)
    if code in _DENIED_CODES:
        return PermissionError(f"Access denied for {key}")
    return exc


class S3StorageBackend(StorageBackend):
    """Objects under ``<folder>/<name>`` in one bucket.

    boto3 is blocking, so every SDK call runs in a worker thread.
    """

    name = "s3"

    def __init__(self, bucket: str, client: Any, fetch_timeout: float = 30.0):
        if not bucket:
            raise ValueError("S3 bucket name is not configured")
        self.bucket = bucket
        self._client = client
        self._fetch_timeout = fetch_timeout

    async def _call(self, method: str, key: str, **kwargs: Any) -> Any:
        fn = getattr(self._client, method)
        try:
            return await asyncio.to_thread(fn, Bucket=self.bucket, Key=key, **kwargs)
        except ClientError as exc:
            raise _translate(exc, key) from exc

    async def list(self, folder: str) -> list[StorageEntry]:
        prefix = f"{folder}/"

        def _list() -> list[dict]:
            paginator = self._client.get_paginator("list_objects_v2")
            rows: list[dict] = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter="/"):
                rows.extend(page.get("Contents", []) or [])
            return rows

        try:
            rows = await asyncio.to_thread(_list)
        except ClientError as exc:
            raise _translate(exc, prefix) from exc

        entries: list[StorageEntry] = []
        for row in rows:
            key = row.get("Key", "")
            name = key[len(prefix):]
            if not name or "/" in name or name.startswith("."):
                continue
            if is_companion_key(name):
                continue
            entries.append(
                StorageEntry(
                    key=key,
                    name=name,
                    size=int(row.get("Size", 0) or 0),
                    updated_at=row.get("LastModified"),
                    content_type=mimetypes.guess_type(name)[0],
                )
            )
        return entries

    async def fetch_bytes(self, key: str) -> bytes:
        resp = await self._call("get_object", key)
        body = resp["Body"]
        try:
            return await asyncio.to_thread(body.read)
        finally:
            body.close()

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        await self._call("put_object", key, Body=data, **extra)

    async def remove(self, key: str) -> None:
        # delete_object succeeds for absent keys, so check first
        await self._call("head_object", key)
        await self._call("delete_object", key)

    async def exists(self, key: str) -> bool:
        try:
            await self._call("head_object", key)
        except FileNotFoundError:
            return False
        return True

    async def signed_url(self, key: str, expiry_seconds: int) -> str:
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expiry_seconds,
            )
        except ClientError as exc:
            raise _translate(exc, key) from exc

    async def open_stream(self, key: str, expiry_seconds: int | None = None) -> ByteStream:
        """Fetch through a short-lived presigned URL and relay the body."""
        if not await self.exists(key):
            raise FileNotFoundError(key)
        url = await self.signed_url(key, expiry_seconds or 60)

        client = httpx.AsyncClient(timeout=self._fetch_timeout)
        try:
            resp = await client.send(client.build_request("GET", url), stream=True)
        except httpx.HTTPError:
            await client.aclose()
            raise

        if resp.status_code == 404:
            await resp.aclose()
            await client.aclose()
            raise FileNotFoundError(key)
        if resp.status_code == 403:
            await resp.aclose()
            await client.aclose()
            raise PermissionError(f"Access denied for {key}")
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError:
            await resp.aclose()
            await client.aclose()
            raise

        async def _close() -> None:
            await resp.aclose()
            await client.aclose()

        return ByteStream(
            chunks=resp.aiter_bytes(),
            content_type=resp.headers.get("content-type"),
            close=_close,
        )
