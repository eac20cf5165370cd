"""Admin session tokens — one shared credential, signed cookie per browser."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from jose import JWTError, jwt

from app.config import settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AdminSession:
    """Privilege of the current request, built fresh per request."""
    is_admin: bool = False
    username: str | None = None


ANONYMOUS = AdminSession()


def verify_credentials(username: str, password: str) -> bool:
    user_ok = hmac.compare_digest(username.encode(), settings.admin_username.encode())
    pass_ok = hmac.compare_digest(password.encode(), settings.admin_password.encode())
    return user_ok and pass_ok


def create_session_token(username: str) -> str:
    return jwt.encode(
        {"sub": username, "role": ADMIN_ROLE},
        settings.secret_key,
        algorithm=settings.token_algorithm,
    )


def session_from_token(token: str | None) -> AdminSession:
    """Decode a session token; anything invalid is an anonymous session."""
    if not token:
        return ANONYMOUS
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.token_algorithm],
        )
    except JWTError as exc:
        logger.debug("Rejected session token: %s", exc)
        return ANONYMOUS

    username = payload.get("sub")
    if not username or payload.get("role") != ADMIN_ROLE:
        return ANONYMOUS
    return AdminSession(is_admin=True, username=username)
