"""Recursive folder scanning for indexable files."""

import logging
import os
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100

SYSTEM_DIRECTORIES = {
    "#recycle",
    "$recycle.bin",
    "system volume information",
    "recycler",
}

VCS_DIRECTORIES = {".git", ".svn", ".hg"}


def should_skip_dir(name: str) -> bool:
    """Check if a directory should not be descended into.

    Only OS recycle bins, volume metadata, ``$``-prefixed system folders and
    version-control stores are skipped; user folders are always scanned.
    """
    lowered = name.lower()
    if lowered.startswith("$"):
        return True
    return lowered in SYSTEM_DIRECTORIES or lowered in VCS_DIRECTORIES


def scan_folder(
    root: Path | str,
    extensions: Iterable[str],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[Path]:
    """List supported files under ``root``, sorted by path.

    Unreadable subtrees (permission denied, vanished network shares) are
    logged and skipped; the scan continues with their siblings.

    Args:
        root: Folder to scan
        extensions: Lower-case extensions with leading dot
        max_depth: Directories deeper than this below ``root`` are not entered
    """
    wanted = {ext.lower() for ext in extensions}
    found: list[Path] = []

    def walk(directory: Path, depth: int) -> None:
        try:
            with os.scandir(directory) as entries:
                items = list(entries)
        except OSError as e:
            logger.warning(f"Skipping {directory}: {e}")
            return

        for entry in items:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if depth < max_depth and not should_skip_dir(entry.name):
                        walk(Path(entry.path), depth + 1)
                elif entry.is_file():
                    if os.path.splitext(entry.name)[1].lower() in wanted:
                        found.append(Path(entry.path))
            except OSError as e:
                logger.warning(f"Skipping {entry.path}: {e}")

    root_path = Path(root)
    if not root_path.is_dir():
        raise NotADirectoryError(f"Not a folder: {root_path}")
    walk(root_path, 0)
    found.sort()
    return found
