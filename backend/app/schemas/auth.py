"""Auth schemas."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str
    password: str


class SessionInfo(BaseModel):
    is_admin: bool
    username: str | None = None
