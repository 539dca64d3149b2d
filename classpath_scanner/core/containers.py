"""
Resource Containers

A classpath root is either a plain directory or an archive file. Both are
exposed through ``ResourceContainer`` so the scanner can walk them with one
loop: ``entries()`` lazily yields a ``RawEntry`` per regular file (or
archive member), named relative to the container root.

Error handling differs by container kind. An archive that cannot be opened
raises ``CorruptArchiveError`` and the scanner records it as a diagnostic.
A directory root that cannot be listed raises ``ScanError``, which aborts
the whole scan.
"""

from __future__ import annotations

import logging
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from classpath_scanner.utils.filesystem import relative_name, walk_tree

from .config import DEFAULT_ARCHIVE_SUFFIXES
from .errors import CorruptArchiveError, RootNotFoundError, ScanError
from .models import RawEntry

LOGGER_NAME = "classpath_scanner.containers"
logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)

ARCHIVE_LOCATION_SEPARATOR = "!/"


# =============================================================================
# Root classification
# =============================================================================

class RootKind(Enum):
    DIRECTORY = "directory"
    ARCHIVE = "archive"
    MISSING = "missing"


def classify_root(
    path: Path,
    archive_suffixes: Iterable[str] = DEFAULT_ARCHIVE_SUFFIXES,
) -> RootKind:
    try:
        if path.is_dir():
            return RootKind.DIRECTORY
        if path.is_file() and path.name.lower().endswith(tuple(archive_suffixes)):
            return RootKind.ARCHIVE
    except (OSError, ValueError):
        pass
    return RootKind.MISSING


# =============================================================================
# Containers
# =============================================================================

class ResourceContainer(ABC):
    def __init__(self, root: Path) -> None:
        self.root = root

    @abstractmethod
    def entries(self) -> Iterator[RawEntry]:
        """
        Lazily yield every regular entry below the container root.
        """

    def close(self) -> None:
        pass

    def __enter__(self) -> "ResourceContainer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class DirectoryContainer(ResourceContainer):
    def __init__(self, root: Path) -> None:
        super().__init__(Path(root).resolve())

    def entries(self) -> Iterator[RawEntry]:
        for directory, files in walk_tree(self.root, on_error=self._on_walk_error):
            for file_name in files:
                path = directory / file_name
                try:
                    if not path.is_file():
                        continue
                except OSError as exc:
                    logger.debug("Skipping %s: %s", path, exc)
                    continue

                yield RawEntry(
                    name=relative_name(self.root, path),
                    location=str(path),
                )

    def _on_walk_error(self, exc: OSError) -> None:
        failed = Path(exc.filename) if exc.filename else None
        if failed is None or failed == self.root:
            raise ScanError(f"failed scanning directory: {self.root}: {exc}") from exc
        logger.debug("Skipping unreadable directory %s: %s", failed, exc)


@dataclass
class _ArchiveNode:
    files: List[Tuple[str, str]] = field(default_factory=list)
    dirs: Dict[str, "_ArchiveNode"] = field(default_factory=dict)


class ArchiveContainer(ResourceContainer):
    """
    Zip based archive (``.jar``/``.zip``) traversed as a virtual filesystem
    rebuilt from its member list; leading ``/`` in member names is dropped.

    The archive is opened on construction; the handle stays open until
    ``close()`` and is never shared between roots.
    """

    def __init__(self, root: Path) -> None:
        super().__init__(Path(root))
        try:
            self._zip: Optional[zipfile.ZipFile] = zipfile.ZipFile(self.root)
            self._zip.namelist()
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as exc:
            raise CorruptArchiveError(
                f"failed scanning archive: {self.root}: {exc}",
                "CORRUPT_OR_UNREADABLE_ARCHIVE",
            ) from exc

    def entries(self) -> Iterator[RawEntry]:
        if self._zip is None:
            raise ScanError(f"archive already closed: {self.root}")
        yield from self._walk(self._build_tree(self._zip.infolist()))

    @staticmethod
    def _build_tree(infos: Iterable[zipfile.ZipInfo]) -> "_ArchiveNode":
        tree = _ArchiveNode()
        for info in infos:
            if info.is_dir():
                continue
            name = info.filename.lstrip("/")
            if not name:
                continue

            *parents, base = name.split("/")
            node = tree
            for part in parents:
                node = node.dirs.setdefault(part, _ArchiveNode())
            node.files.append((base, name))
        return tree

    def _walk(self, node: "_ArchiveNode") -> Iterator[RawEntry]:
        for _, name in sorted(node.files):
            yield RawEntry(
                name=name,
                location=f"{self.root}{ARCHIVE_LOCATION_SEPARATOR}{name}",
            )

        for part in sorted(node.dirs):
            yield from self._walk(node.dirs[part])

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None


# =============================================================================
# Factory
# =============================================================================

def open_container(
    root: Path,
    archive_suffixes: Iterable[str] = DEFAULT_ARCHIVE_SUFFIXES,
) -> ResourceContainer:
    """
    Open the container matching the kind of ``root``.

    Raises:
        RootNotFoundError if root is neither a directory nor a known archive
        CorruptArchiveError if root is an archive that cannot be opened
    """
    path = Path(root)
    kind = classify_root(path, archive_suffixes)

    if kind is RootKind.DIRECTORY:
        return DirectoryContainer(path)
    if kind is RootKind.ARCHIVE:
        return ArchiveContainer(path)

    raise RootNotFoundError(f"not found: {path}", "ROOT_NOT_FOUND")
