"""Filename sanitizing and display formatting helpers."""

import re
import time
from datetime import datetime

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.\-_]")
_LINK_SUFFIX = re.compile(r"\.link$", re.IGNORECASE)

EXTERNAL_SIZE_LABEL = "External"


def sanitize_filename(name: str) -> str:
    """Replace everything outside ``[a-zA-Z0-9.-_]`` with ``_``."""
    cleaned = _UNSAFE_CHARS.sub("_", (name or "").strip())
    return cleaned or f"file_{int(time.time() * 1000)}"


def strip_link_suffix(name: str) -> str:
    return _LINK_SUFFIX.sub("", name)


def is_link_name(name: str) -> bool:
    return bool(_LINK_SUFFIX.search(name))


def format_size_label(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.2f} MB"


def format_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


def format_datetime(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


def to_epoch_ms(value: datetime | None) -> int:
    return int(value.timestamp() * 1000) if value else 0
