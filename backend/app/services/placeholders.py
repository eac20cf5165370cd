"""External-link extraction for placeholder (``.link``) files.

A placeholder body is free text that points at an outside resource, e.g.
``external: https://youtu.be/abc123``. Candidates are searched by category
in priority order, so a provider URL buried in prose still beats a generic
link that appears earlier in the text.
"""

from __future__ import annotations

import re

_URL_CHARS = r"[^\s\"'<>]+"

EXPLICIT_PATTERN = re.compile(r"external:\s*[\"'<]?(" + _URL_CHARS + ")", re.IGNORECASE)

PROVIDER_PATTERNS = (
    # YouTube
    re.compile(
        r"https?://(?:www\.|m\.)?youtube\.com/(?:watch\?" + _URL_CHARS + r"|embed/" + _URL_CHARS
        + r"|shorts/" + _URL_CHARS + ")",
        re.IGNORECASE,
    ),
    re.compile(r"https?://youtu\.be/" + _URL_CHARS, re.IGNORECASE),
    # Vimeo
    re.compile(r"https?://(?:www\.|player\.)?vimeo\.com/" + _URL_CHARS, re.IGNORECASE),
    # Google Drive
    re.compile(
        r"https?://drive\.google\.com/(?:file/d/|open\?id=|uc\?)" + _URL_CHARS,
        re.IGNORECASE,
    ),
)

MEDIA_PATTERN = re.compile(
    r"https?://[^\s\"'<>?#]+\.(?:mp4|webm|ogg|mp3|wav)(?!\w)(?:\?[^\s\"'<>]*)?",
    re.IGNORECASE,
)

GENERIC_PATTERN = re.compile(r"https?://" + _URL_CHARS, re.IGNORECASE)

# Bodies of failed fetches that were saved instead of the real link.
# Known to be incomplete.
REJECTED_MARKERS = re.compile(r"error_204|jserror", re.IGNORECASE)

_WRAPPING = "\"'`<>"
_TRAILING = ")].,;:"

_YOUTUBE_ID = (
    re.compile(r"youtu\.be/([\w-]+)", re.IGNORECASE),
    re.compile(r"youtube\.com/watch\?(?:[^\s#]*&)?v=([\w-]+)", re.IGNORECASE),
    re.compile(r"youtube\.com/(?:embed|shorts)/([\w-]+)", re.IGNORECASE),
)


def clean_url(candidate: str) -> str | None:
    """Trim quotes and sentence punctuation; ``None`` if it isn't usable."""
    url = candidate.strip().strip(_WRAPPING)
    url = url.rstrip(_TRAILING).strip(_WRAPPING)
    if not re.match(r"^https?://\S", url, re.IGNORECASE):
        return None
    if REJECTED_MARKERS.search(url):
        return None
    return url


def youtube_video_id(url: str) -> str | None:
    for pattern in _YOUTUBE_ID:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def normalize_url(url: str) -> str:
    """Canonical form for known providers; other URLs pass through."""
    video_id = youtube_video_id(url)
    if video_id:
        return f"https://www.youtube.com/watch?v={video_id}"
    return url


def embed_url(url: str) -> str | None:
    """Player URL for providers that can be shown in an iframe."""
    video_id = youtube_video_id(url)
    if video_id:
        return f"https://www.youtube.com/embed/{video_id}"
    match = re.search(r"vimeo\.com/(?:video/)?(\d+)", url, re.IGNORECASE)
    if match:
        return f"https://player.vimeo.com/video/{match.group(1)}"
    match = re.search(r"drive\.google\.com/file/d/([\w-]+)", url, re.IGNORECASE)
    if match:
        return f"https://drive.google.com/file/d/{match.group(1)}/preview"
    return None


def _first_match(patterns, text: str, group: int = 0) -> str | None:
    for pattern in patterns:
        for match in pattern.finditer(text):
            url = clean_url(match.group(group))
            if url:
                return url
    return None


def extract_external_url(text: str | None) -> str | None:
    """Pick the external URL a placeholder body refers to.

    Priority: ``external:`` prefix, video providers, direct media files,
    then any http(s) URL.
    """
    if not text:
        return None

    url = (
        _first_match((EXPLICIT_PATTERN,), text, group=1)
        or _first_match(PROVIDER_PATTERNS, text)
        or _first_match((MEDIA_PATTERN,), text)
        or _first_match((GENERIC_PATTERN,), text)
    )
    return normalize_url(url) if url else None


def placeholder_body(url: str) -> str:
    """Text written into a ``.link`` file for link-mode uploads."""
    return f"external: {url}\n"
