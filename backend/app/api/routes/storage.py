"""Same-origin storage proxy — streams stored bytes to the browser."""

from __future__ import annotations

import logging
import re

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from app.api.deps import get_storage
from app.config import settings
from app.storage import FOLDERS, StorageBackend
from app.utils.mime import guess_mime

logger = logging.getLogger(__name__)
router = APIRouter()

FILE_PARAM = re.compile(r"^(" + "|".join(FOLDERS) + r")/.+$", re.IGNORECASE)


def parse_file_param(file: str) -> str | None:
    """Validated ``<folder>/<name>`` key, or ``None`` if malformed."""
    if not FILE_PARAM.match(file):
        return None
    if "\\" in file or any(part in ("", ".", "..") for part in file.split("/")):
        return None
    folder, rest = file.split("/", 1)
    return f"{folder.lower()}/{rest}"


@router.get("")
async def proxy_file(file: str = "", storage: StorageBackend = Depends(get_storage)):
    """Stream ``file`` from storage. No auth: galleries are public."""
    key = parse_file_param(file)
    if key is None:
        return PlainTextResponse("Invalid file parameter", status_code=400)

    expiry = min(settings.signed_url_expiry_seconds, settings.proxy_signed_url_seconds)
    try:
        stream = await storage.open_stream(key, expiry_seconds=expiry)
    except FileNotFoundError:
        return PlainTextResponse("Not found", status_code=404)
    except httpx.HTTPStatusError as exc:
        return PlainTextResponse("Error fetching file", status_code=exc.response.status_code)
    except Exception as exc:
        logger.error("Proxy read of %s failed: %s", key, exc)
        return PlainTextResponse("Server error", status_code=500)

    cache_control = f"public, max-age={settings.proxy_cache_seconds}"
    if settings.uses_bucket:
        cache_control += ", stale-while-revalidate=300"

    return StreamingResponse(
        stream.chunks,
        media_type=stream.content_type or guess_mime(key),
        headers={
            "Cache-Control": cache_control,
            "X-Content-Type-Options": "nosniff",
        },
        background=BackgroundTask(stream.close),
    )
