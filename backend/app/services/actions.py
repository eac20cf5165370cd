"""Upload and delete actions.

Both are synchronous from the caller's view and report failures as an
``ActionResult`` with a user-facing message rather than raising.
"""

from __future__ import annotations

import json
import logging
from urllib.parse import urlparse

from app.schemas.files import ActionResult
from app.services.placeholders import clean_url, placeholder_body
from app.services.revisions import ListingRevisions
from app.storage import FOLDERS, StorageBackend, companion_key, is_companion_key, make_key
from app.utils.files import sanitize_filename, strip_link_suffix
from app.utils.mime import guess_mime

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024
RESERVED_NAME_MESSAGE = "This file name is not allowed."


def _failure(message: str, status_code: int) -> ActionResult:
    return ActionResult(success=False, message=message, status_code=status_code)


def _backend_failure(exc: Exception, action: str) -> ActionResult:
    """Best-effort human readable message for a backend error."""
    if isinstance(exc, PermissionError):
        return _failure(f"Permission denied while trying to {action} the file.", 403)
    if isinstance(exc, FileNotFoundError):
        return _failure("File not found.", 404)
    return _failure(f"Failed to {action} file.", 500)


def _is_reserved_name(name: str) -> bool:
    """Names the listing hides: dotfiles and companion JSON sidecars."""
    return name.startswith(".") or is_companion_key(name)


def too_large_message(max_bytes: int) -> str:
    return f"File is too large (max {max_bytes // (1024 * 1024)} MB)."


async def _write_companion(backend: StorageBackend, key: str, data: dict) -> None:
    payload = {k: v for k, v in data.items() if v not in (None, "")}
    if not payload:
        return
    try:
        await backend.put(
            companion_key(key),
            json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            "application/json",
        )
    except Exception as exc:
        logger.warning("Could not write companion metadata for %s: %s", key, exc)


async def _drop_companion(backend: StorageBackend, key: str) -> None:
    try:
        await backend.remove(companion_key(key))
    except FileNotFoundError:
        pass
    except Exception as exc:
        logger.warning("Could not remove companion metadata for %s: %s", key, exc)


async def upload_file(
    backend: StorageBackend,
    revisions: ListingRevisions,
    *,
    folder: str,
    filename: str | None,
    data: bytes | None,
    description: str | None = None,
    content_type: str | None = None,
    declared_size: int | None = None,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> ActionResult:
    """Store one file under its sanitized name plus optional description."""
    if folder not in FOLDERS:
        return _failure("Invalid file information.", 400)
    if declared_size is not None and declared_size > max_bytes:
        return _failure(too_large_message(max_bytes), 413)
    if not filename or not data:
        return _failure("Please select a file to upload.", 400)
    if len(data) > max_bytes:
        return _failure(too_large_message(max_bytes), 413)

    name = sanitize_filename(filename)
    if _is_reserved_name(name):
        return _failure(RESERVED_NAME_MESSAGE, 400)
    key = make_key(folder, name)
    try:
        await backend.put(key, data, content_type or guess_mime(name))
    except Exception as exc:
        logger.error("Upload of %s failed: %s", key, exc)
        return _backend_failure(exc, "upload")

    description = (description or "").strip()
    if description:
        await _write_companion(backend, key, {"description": description, "size": len(data)})
    else:
        # A replaced file must not inherit the previous sidecar
        await _drop_companion(backend, key)

    revisions.bump(folder)
    logger.info("Uploaded %s (%d bytes)", key, len(data))
    return ActionResult(success=True, message="File uploaded successfully!", path=key)


def _name_from_url(url: str) -> str:
    path = urlparse(url).path.rstrip("/")
    tail = path.rsplit("/", 1)[-1]
    return tail or urlparse(url).netloc or "link"


async def upload_link(
    backend: StorageBackend,
    revisions: ListingRevisions,
    *,
    folder: str,
    url: str | None,
    filename: str | None = None,
    description: str | None = None,
) -> ActionResult:
    """Register an external resource as a ``.link`` placeholder."""
    if folder not in FOLDERS:
        return _failure("Invalid file information.", 400)
    target = clean_url(url or "")
    if not target:
        return _failure("Please provide a valid http(s) URL.", 400)

    display_name = (filename or "").strip() or _name_from_url(target)
    stem = strip_link_suffix(sanitize_filename(display_name))
    if _is_reserved_name(stem) or _is_reserved_name(f"{stem}.link"):
        return _failure(RESERVED_NAME_MESSAGE, 400)
    key = make_key(folder, f"{stem}.link")
    try:
        await backend.put(key, placeholder_body(target).encode("utf-8"), "text/plain")
    except Exception as exc:
        logger.error("Link upload of %s failed: %s", key, exc)
        return _backend_failure(exc, "upload")

    await _write_companion(
        backend,
        key,
        {
            "externalUrl": target,
            "displayName": display_name,
            "description": (description or "").strip(),
        },
    )
    revisions.bump(folder)
    logger.info("Registered external link %s -> %s", key, target)
    return ActionResult(success=True, message="Link saved successfully!", path=key)


async def delete_file(
    backend: StorageBackend,
    revisions: ListingRevisions,
    *,
    folder: str,
    filename: str | None,
) -> ActionResult:
    """Remove a stored file and, if present, its companion JSON."""
    if not filename or folder not in FOLDERS:
        return _failure("Invalid file information.", 400)

    name = sanitize_filename(filename)
    if _is_reserved_name(name):
        return _failure("Invalid file information.", 400)
    key = make_key(folder, name)
    try:
        await backend.remove(key)
    except Exception as exc:
        logger.warning("Delete of %s failed: %s", key, exc)
        return _backend_failure(exc, "delete")

    await _drop_companion(backend, key)

    revisions.bump(folder)
    logger.info("Deleted %s", key)
    return ActionResult(success=True, message="File deleted successfully.")
