"""Gallery pages — public browsing, admin uploads, login."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request, UploadFile, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from app.api.deps import get_resolver, get_revisions, get_session, get_storage
from app.api.routes.auth import clear_session_cookie, set_session_cookie
from app.config import settings
from app.schemas.files import ActionResult
from app.services import actions
from app.services.auth import AdminSession, verify_credentials
from app.services.metadata import MetadataResolver, filter_files
from app.services.placeholders import embed_url
from app.services.revisions import ListingRevisions
from app.storage import FOLDERS, StorageBackend

logger = logging.getLogger(__name__)
router = APIRouter(include_in_schema=False)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.filters["embed_url"] = embed_url

TAB_LABELS = {
    "images": "Photos",
    "videos": "Videos",
    "audios": "Audio",
    "documents": "Documents",
}


async def _render_gallery(
    request: Request,
    resolver: MetadataResolver,
    session: AdminSession,
    *,
    tab: str,
    q: str,
    admin_mode: bool,
    message: str = "",
    success: bool = True,
):
    tab = tab if tab in FOLDERS else "images"
    tabs = []
    error = ""
    for folder in TAB_LABELS:
        try:
            files = filter_files(await resolver.list_files(folder), q)
        except Exception as exc:
            logger.error("Listing %s failed: %s", folder, exc)
            files = []
            error = "Some files could not be loaded."
        tabs.append({"folder": folder, "label": TAB_LABELS[folder], "files": files})

    return templates.TemplateResponse(
        request,
        "gallery.html",
        {
            "app_name": settings.app_name,
            "tabs": tabs,
            "active_tab": tab,
            "q": q,
            "is_admin": session.is_admin,
            "admin_mode": admin_mode,
            "message": message,
            "success": success,
            "error": error,
            "max_upload_mb": settings.max_upload_bytes // (1024 * 1024),
        },
        headers={"Cache-Control": "no-store"},
    )


def _back_to_admin(tab: str, result: ActionResult) -> RedirectResponse:
    query = urlencode({"tab": tab, "msg": result.message, "ok": int(result.success)})
    return RedirectResponse(f"/uploads?{query}", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/")
async def gallery(
    request: Request,
    tab: str = "images",
    q: str = "",
    resolver: MetadataResolver = Depends(get_resolver),
    session: AdminSession = Depends(get_session),
):
    """Public gallery."""
    return await _render_gallery(request, resolver, session, tab=tab, q=q, admin_mode=False)


@router.get("/uploads")
async def admin_gallery(
    request: Request,
    tab: str = "images",
    q: str = "",
    msg: str = "",
    ok: int = 1,
    resolver: MetadataResolver = Depends(get_resolver),
    session: AdminSession = Depends(get_session),
):
    """Admin gallery with upload and delete controls."""
    if not session.is_admin:
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    return await _render_gallery(
        request, resolver, session,
        tab=tab, q=q, admin_mode=True, message=msg, success=bool(ok),
    )


@router.post("/uploads/upload")
async def admin_upload(
    tab: str = Form(...),
    description: str = Form(""),
    url: str = Form(""),
    file_name: str = Form("", alias="fileName"),
    file: UploadFile | None = None,
    storage: StorageBackend = Depends(get_storage),
    revisions: ListingRevisions = Depends(get_revisions),
    session: AdminSession = Depends(get_session),
):
    if not session.is_admin:
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)

    has_file = file is not None and bool(file.filename)
    if not has_file and url.strip():
        result = await actions.upload_link(
            storage, revisions,
            folder=tab, url=url, filename=file_name, description=description,
        )
        return _back_to_admin(tab, result)

    declared_size = file.size if has_file else None
    data = None
    if has_file and (declared_size is None or declared_size <= settings.max_upload_bytes):
        data = await file.read()
    result = await actions.upload_file(
        storage, revisions,
        folder=tab,
        filename=file.filename if has_file else None,
        data=data,
        description=description,
        content_type=file.content_type if has_file else None,
        declared_size=declared_size,
        max_bytes=settings.max_upload_bytes,
    )
    return _back_to_admin(tab, result)


@router.post("/uploads/delete")
async def admin_delete(
    tab: str = Form(...),
    file_name: str = Form(..., alias="fileName"),
    storage: StorageBackend = Depends(get_storage),
    revisions: ListingRevisions = Depends(get_revisions),
    session: AdminSession = Depends(get_session),
):
    if not session.is_admin:
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    result = await actions.delete_file(storage, revisions, folder=tab, filename=file_name)
    return _back_to_admin(tab, result)


@router.get("/login")
async def login_page(request: Request, session: AdminSession = Depends(get_session)):
    if session.is_admin:
        return RedirectResponse("/uploads", status_code=status.HTTP_303_SEE_OTHER)
    return templates.TemplateResponse(request, "login.html", {"app_name": settings.app_name})


@router.post("/login")
async def login_submit(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
):
    if not verify_credentials(username, password):
        logger.warning("Failed admin login for %r", username)
        return templates.TemplateResponse(
            request,
            "login.html",
            {"app_name": settings.app_name, "message": "Invalid username or password"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    response = RedirectResponse("/uploads", status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, username)
    logger.info("Admin %s logged in", username)
    return response


@router.post("/logout")
async def logout_submit():
    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    return response
