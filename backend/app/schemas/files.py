"""Gallery file schemas — JSON uses camelCase field names."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Category = Literal["image", "video", "document", "audio"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileMetadata(_CamelModel):
    """One listed gallery entry, recomputed on every listing."""
    display_name: str
    stored_name: str
    size_label: str  # "2.00 MB" or "External"
    last_modified: str = ""
    mtime_ms: int = 0  # sort key, newest first
    description: str | None = None
    capture_date: str | None = None  # images only, mock value
    location: str | None = None  # images only, mock value
    category: Category
    resolved_path: str
    proxy_path: str | None = None
    is_external: bool = False


class CompanionMetadata(_CamelModel):
    """Sidecar ``<key>.json`` stored next to each object."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    description: str | None = None
    display_name: str | None = None
    external_url: str | None = None
    size: int | None = None

    @field_validator("description", "display_name", "external_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class ActionResult(BaseModel):
    """Outcome of an upload or delete."""
    success: bool
    message: str
    path: str | None = None
    status_code: int = Field(default=200, exclude=True)


class DeleteRequest(_CamelModel):
    file_name: str
    type: str


class FolderSummary(BaseModel):
    folder: str
    category: Category
    count: int
    revision: int
