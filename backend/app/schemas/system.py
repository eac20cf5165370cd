"""Service status schemas."""

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"] = "ok"
    version: str
    service: str = "media-gallery"
    storage_backend: str
    revisions: dict[str, int] = {}
