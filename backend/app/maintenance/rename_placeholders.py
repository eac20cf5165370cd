"""Rename stored placeholders so the stored name matches the display name.

Usage:
    python -m app.maintenance.rename_placeholders           # dry-run
    python -m app.maintenance.rename_placeholders --apply

Each ``<name>.link`` whose companion ``displayName`` sanitizes to a different
stem is copied to ``<sanitized displayName>`` (``_1``, ``_2``... when taken),
its companion JSON follows, and the old keys are removed.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

from app.config import settings
from app.services.metadata import read_companion
from app.storage import FOLDERS, StorageBackend, companion_key, create_storage_backend, make_key
from app.utils.files import is_link_name, sanitize_filename, strip_link_suffix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenameOp:
    folder: str
    old_name: str
    new_name: str
    has_companion: bool


async def plan_renames(backend: StorageBackend) -> list[RenameOp]:
    """Dry-run: placeholders whose stored name differs from their display name."""
    ops: list[RenameOp] = []
    for folder in FOLDERS:
        try:
            entries = await backend.list(folder)
        except Exception as exc:
            logger.warning("Skipping %s: %s", folder, exc)
            continue
        for entry in entries:
            if not is_link_name(entry.name):
                continue
            base = strip_link_suffix(entry.name)
            companion = await read_companion(backend, entry.key)
            display_name = (companion.display_name if companion else None) or base
            new_name = sanitize_filename(display_name)
            if new_name == base:
                continue
            ops.append(RenameOp(folder, entry.name, new_name, companion is not None))
    return ops


async def _free_key(backend: StorageBackend, folder: str, name: str) -> str:
    key = make_key(folder, name)
    idx = 1
    while await backend.exists(key):
        key = make_key(folder, f"{name}_{idx}")
        idx += 1
    return key


async def apply_renames(backend: StorageBackend, ops: list[RenameOp]) -> int:
    """Perform the planned renames; returns how many succeeded."""
    done = 0
    for op in ops:
        old_key = make_key(op.folder, op.old_name)
        try:
            new_key = await _free_key(backend, op.folder, op.new_name)
            data = await backend.fetch_bytes(old_key)
            await backend.put(new_key, data, "text/plain")
            if op.has_companion:
                meta = await backend.fetch_bytes(companion_key(old_key))
                await backend.put(companion_key(new_key), meta, "application/json")
        except Exception as exc:
            logger.warning("Error migrating %s: %s", old_key, exc)
            continue

        for key in (old_key, companion_key(old_key)):
            try:
                await backend.remove(key)
            except FileNotFoundError:
                pass
            except Exception as exc:
                logger.warning("Could not remove %s: %s", key, exc)
        logger.info("Renamed %s -> %s", old_key, new_key)
        done += 1
    return done


async def run(apply: bool, backend: StorageBackend | None = None) -> int:
    backend = backend or create_storage_backend(settings)
    ops = await plan_renames(backend)
    if not ops:
        logger.info("No placeholder renames required.")
        return 0

    logger.info("Found %d candidate(s) to rename:", len(ops))
    for i, op in enumerate(ops, start=1):
        logger.info(
            "%d. %s: %s -> %s%s",
            i, op.folder, op.old_name, op.new_name, " (+json)" if op.has_companion else "",
        )

    if not apply:
        logger.info("Dry-run complete. Re-run with --apply to perform the renames.")
        return 0

    done = await apply_renames(backend, ops)
    logger.info("Migration complete: %d of %d renamed.", done, len(ops))
    return 0 if done == len(ops) else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rename stored placeholder files")
    parser.add_argument("--apply", action="store_true", help="perform the renames (default: dry-run)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Storage backend: %s", settings.storage_backend)
    return asyncio.run(run(args.apply))


if __name__ == "__main__":
    sys.exit(main())
