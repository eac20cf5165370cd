"""Listing revisions — bumped after every write so clients refetch."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class ListingRevisions:
    """Per-folder counters; a changed value invalidates cached listings."""

    def __init__(self):
        self._lock = threading.Lock()
        self._revisions: dict[str, int] = {}

    def get(self, folder: str) -> int:
        with self._lock:
            return self._revisions.get(folder, 0)

    def bump(self, folder: str) -> int:
        with self._lock:
            value = self._revisions.get(folder, 0) + 1
            self._revisions[folder] = value
        logger.debug("Listing revision for %s -> %d", folder, value)
        return value
