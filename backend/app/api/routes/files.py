"""File routes — listings, upload and delete."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from app.api.deps import get_resolver, get_revisions, get_storage, require_admin
from app.config import settings
from app.schemas.files import ActionResult, DeleteRequest, FileMetadata, FolderSummary
from app.services import actions
from app.services.metadata import MetadataResolver, filter_files
from app.services.revisions import ListingRevisions
from app.storage import FOLDER_CATEGORIES, FOLDERS, StorageBackend

logger = logging.getLogger(__name__)
router = APIRouter()


def action_response(result: ActionResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.model_dump())


@router.get("", response_model=list[FolderSummary])
async def folder_summary(
    storage: StorageBackend = Depends(get_storage),
    revisions: ListingRevisions = Depends(get_revisions),
):
    """Entry counts per folder."""
    summary = []
    for folder in FOLDERS:
        try:
            count = len(await storage.list(folder))
        except Exception as exc:
            logger.error("Listing %s failed: %s", folder, exc)
            raise HTTPException(500, "Storage backend error")
        summary.append(
            FolderSummary(
                folder=folder,
                category=FOLDER_CATEGORIES[folder],
                count=count,
                revision=revisions.get(folder),
            )
        )
    return summary


@router.get("/{folder}", response_model=list[FileMetadata])
async def list_files(
    folder: str,
    response: Response,
    q: str | None = None,
    resolver: MetadataResolver = Depends(get_resolver),
    revisions: ListingRevisions = Depends(get_revisions),
):
    """Resolved metadata for one folder, newest first, optionally filtered."""
    if folder not in FOLDER_CATEGORIES:
        raise HTTPException(404, f"Unknown folder '{folder}'")
    try:
        files = await resolver.list_files(folder)
    except Exception as exc:
        logger.error("Listing %s failed: %s", folder, exc)
        raise HTTPException(500, "Storage backend error")

    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Listing-Revision"] = str(revisions.get(folder))
    return filter_files(files, q)


@router.post("/upload", response_model=ActionResult, dependencies=[Depends(require_admin)])
async def upload(
    request: Request,
    storage: StorageBackend = Depends(get_storage),
    revisions: ListingRevisions = Depends(get_revisions),
):
    """Upload one file (``file``) or register an external link (``url``).

    Form fields: ``type`` (folder), optional ``description``, and for link
    mode an optional ``fileName``.
    """
    form = await request.form()
    folder = str(form.get("type") or "")
    description = str(form.get("description") or "")

    # Browsers send an empty part with no filename when no file is picked
    uploads = [
        item for item in form.getlist("file")
        if isinstance(item, UploadFile) and item.filename
    ]
    if len(uploads) > 1:
        return action_response(
            ActionResult(
                success=False,
                message="Only one file can be uploaded at a time.",
                status_code=400,
            )
        )

    if not uploads and form.get("url"):
        result = await actions.upload_link(
            storage,
            revisions,
            folder=folder,
            url=str(form.get("url")),
            filename=str(form.get("fileName") or ""),
            description=description,
        )
        return action_response(result)

    upload_file = uploads[0] if uploads else None
    declared_size = getattr(upload_file, "size", None) if upload_file else None
    data = None
    # Oversized uploads are rejected before the body is read into memory
    if upload_file and (declared_size is None or declared_size <= settings.max_upload_bytes):
        data = await upload_file.read()

    result = await actions.upload_file(
        storage,
        revisions,
        folder=folder,
        filename=upload_file.filename if upload_file else None,
        data=data,
        description=description,
        content_type=upload_file.content_type if upload_file else None,
        declared_size=declared_size,
        max_bytes=settings.max_upload_bytes,
    )
    return action_response(result)


FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_delete_request(request: Request) -> DeleteRequest | None:
    content_type = request.headers.get("content-type", "").lower()
    try:
        if content_type.startswith(FORM_CONTENT_TYPES):
            form = await request.form()
            data = {k: v for k, v in form.items() if isinstance(v, str)}
        else:
            data = await request.json()
        return DeleteRequest.model_validate(data)
    except (ValueError, ValidationError) as exc:
        logger.info("Rejected delete request: %s", exc)
        return None


@router.post("/delete", response_model=ActionResult, dependencies=[Depends(require_admin)])
async def delete(
    request: Request,
    storage: StorageBackend = Depends(get_storage),
    revisions: ListingRevisions = Depends(get_revisions),
):
    """Delete a stored file and its companion metadata.

    Accepts a JSON body or form fields, both shaped ``{fileName, type}``.
    """
    body = await _read_delete_request(request)
    if body is None:
        return action_response(
            ActionResult(success=False, message="Invalid file information.", status_code=400)
        )
    result = await actions.delete_file(
        storage, revisions, folder=body.type, filename=body.file_name
    )
    return action_response(result)
