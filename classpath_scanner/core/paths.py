"""
Classpath Sources

Builds loaders from delimiter separated path lists (typically an environment
variable such as ``CLASSPATH``) and resolves loader chains for objects the
caller hands to the scanner. Discovery is best effort: blank, malformed or
missing entries are dropped without raising.
"""

from __future__ import annotations

import os
import logging
from typing import Iterator, List, Mapping, Optional

from classpath_scanner.utils.filesystem import path_exists

from .models import Loader, PathLoader

LOGGER_NAME = "classpath_scanner.paths"
logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)


# =============================================================================
# Path lists
# =============================================================================

def parse_path_list(value: Optional[str], separator: str = os.pathsep) -> List[str]:
    """
    Split a path list into its non-blank segments.
    """
    if value is None or not value.strip():
        return []
    return [segment for segment in value.split(separator) if segment.strip()]


def loaders_from_environment(
    key: str,
    environ: Optional[Mapping[str, str]] = None,
    *,
    separator: str = os.pathsep,
) -> List[PathLoader]:
    """
    Create one single-root loader per existing path listed under ``key``.

    Args:
        key: Environment variable holding the path list
        environ: Mapping to read from, ``os.environ`` by default
        separator: Path list delimiter, the platform's by default

    Returns:
        Loaders in the order their paths appear in the list
    """
    environ = os.environ if environ is None else environ
    loaders: List[PathLoader] = []

    for segment in parse_path_list(environ.get(key), separator):
        if not path_exists(segment):
            logger.debug("Ignoring missing path %r from %s", segment, key)
            continue
        loaders.append(PathLoader(name=f"{key}:{segment}", roots=(segment,)))

    return loaders


# =============================================================================
# Loader chains
# =============================================================================

def resolve_loader(obj: object) -> Optional[Loader]:
    """
    Find the loader owning ``obj``.

    A loader owns itself; any other object may expose its owner through a
    ``loader`` attribute (candidates do).
    """
    if isinstance(obj, Loader):
        return obj
    owner = getattr(obj, "loader", None)
    if isinstance(owner, Loader):
        return owner
    return None


def iter_loader_chain(loader: Optional[Loader]) -> Iterator[Loader]:
    """
    Yield ``loader`` and its ancestors, each at most once.

    Parent links are caller supplied, so the walk stops at the first loader
    already seen as well as at a missing parent.
    """
    seen = set()
    while loader is not None and id(loader) not in seen:
        seen.add(id(loader))
        yield loader
        loader = loader.parent
