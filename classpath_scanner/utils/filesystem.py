"""
Filesystem Utilities

Small helpers shared by the resource containers: a deterministic tree walker,
path helpers and a millisecond timer used to measure scans.
"""

from __future__ import annotations

import os
import time
import logging
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

LOGGER_NAME = "classpath_scanner.utils"
logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)


# =============================================================================
# Directory walking
# =============================================================================

def walk_tree(
    root: Path,
    *,
    on_error: Optional[Callable[[OSError], None]] = None,
) -> Iterator[Tuple[Path, List[str]]]:
    """
    Walk a directory tree top-down, yielding ``(directory, file_names)``.

    Sub-directories and file names are visited in sorted order so that two
    walks over the same tree always produce the same sequence.

    Args:
        root: Directory to walk
        on_error: Called with the OSError of a directory that cannot be listed

    Yields:
        Tuples of the current directory and the sorted names of its files
    """
    for current_root, dirs, files in os.walk(root, onerror=on_error):
        dirs.sort()
        yield Path(current_root), sorted(files)


def relative_name(root: Path, path: Path) -> str:
    """
    Express ``path`` relative to ``root`` using the native separator.
    """
    return os.path.relpath(path, root)


# =============================================================================
# Path helpers
# =============================================================================

def path_exists(value: str) -> bool:
    """
    Best-effort existence check that never raises on malformed input.
    """
    try:
        return Path(value).exists()
    except (OSError, ValueError):
        return False


# =============================================================================
# Timing
# =============================================================================

class ScanTimer:
    """
    Timer utility for classpath scans.
    """

    def __init__(self) -> None:
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None

    def start(self) -> None:
        self.started_at = time.monotonic()
        self.finished_at = None

    def stop(self) -> None:
        self.finished_at = time.monotonic()

    @property
    def elapsed_ms(self) -> int:
        if self.started_at is None:
            return 0
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return int(round((end - self.started_at) * 1000))
