"""Auth routes — single shared admin credential, session cookie."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import get_session
from app.config import settings
from app.schemas.auth import LoginRequest, SessionInfo
from app.services.auth import AdminSession, create_session_token, verify_credentials

logger = logging.getLogger(__name__)
router = APIRouter()


def set_session_cookie(response: Response, username: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        create_session_token(username),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name, path="/")


@router.post("/login", response_model=SessionInfo)
async def login(body: LoginRequest, response: Response):
    """Check the admin credential and start a session."""
    if not verify_credentials(body.username, body.password):
        logger.warning("Failed admin login for %r", body.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    set_session_cookie(response, body.username)
    logger.info("Admin %s logged in", body.username)
    return SessionInfo(is_admin=True, username=body.username)


@router.post("/logout", response_model=SessionInfo)
async def logout(response: Response):
    clear_session_cookie(response)
    return SessionInfo(is_admin=False)


@router.get("/me", response_model=SessionInfo)
async def me(session: AdminSession = Depends(get_session)):
    return SessionInfo(is_admin=session.is_admin, username=session.username)
