from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


class ScanState(Enum):
    IDLE = "idle"
    RESETTING = "resetting"
    TRAVERSING = "traversing"
    FINALIZING = "finalizing"


@dataclass(eq=False)
class Loader:
    """
    A named owner of classpath roots, optionally chained to a parent.

    Loaders compare by identity. The base class owns no roots; scanners
    report it as unsupported and only traverse ``PathLoader`` instances.
    """

    name: str
    parent: Optional["Loader"] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


@dataclass(eq=False)
class PathLoader(Loader):
    roots: Tuple[Path, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.roots = tuple(Path(r) for r in self.roots)

    def __repr__(self) -> str:
        roots = ", ".join(str(r) for r in self.roots)
        return f"PathLoader(name={self.name!r}, roots=[{roots}])"


@dataclass(frozen=True)
class Root:
    path: Path
    loader: Loader


@dataclass(frozen=True)
class RawEntry:
    name: str
    location: str


@dataclass(frozen=True)
class Candidate:
    resource_name: str
    entry_name: str
    location: str
    is_code_unit: bool
    loader: Loader
