"""
Code Unit Inspection

Metadata filters need to know what a code unit declares. Loading a unit and
reading its declarations depends entirely on the runtime that produced it,
so the scanner only talks to a ``UnitInspector``; callers plug in whatever
implementation fits their environment.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from .errors import LoadError
from .models import Loader


# =============================================================================
# Metadata models
# =============================================================================

@dataclass(frozen=True)
class MemberMetadata:
    name: str
    markers: FrozenSet[str] = frozenset()

    def has_metadata(self, predicate_id: str) -> bool:
        return predicate_id in self.markers


@dataclass(frozen=True)
class UnitMetadata:
    name: str
    type_markers: FrozenSet[str] = frozenset()
    members: Tuple[MemberMetadata, ...] = field(default_factory=tuple)

    def has_type_metadata(self, predicate_id: str) -> bool:
        return predicate_id in self.type_markers

    def has_member_metadata(self, predicate_id: str) -> bool:
        return any(m.has_metadata(predicate_id) for m in self.members)


# =============================================================================
# Inspector interface
# =============================================================================

class UnitInspector(ABC):
    @abstractmethod
    def load_and_inspect(self, name: str, loader: Loader) -> UnitMetadata:
        """
        Load the code unit ``name`` through ``loader`` and describe it.

        Raises:
            LoadError if the unit cannot be located or loaded
        """


class UnavailableInspector(UnitInspector):
    """
    Default inspector: no loading capability, every request fails.
    """

    def load_and_inspect(self, name: str, loader: Loader) -> UnitMetadata:
        raise LoadError(f"no inspector configured to load {name}")


class StaticInspector(UnitInspector):
    """
    Inspector backed by a fixed table of unit metadata.

    Useful when the metadata is known up front (generated indexes, tests).
    Lookups are by qualified name; the loader is ignored unless the table
    was registered for a specific loader.
    """

    def __init__(self, units: Optional[Iterable[UnitMetadata]] = None) -> None:
        self._units: Dict[str, UnitMetadata] = {}
        self._scoped: Dict[Tuple[Loader, str], UnitMetadata] = {}
        for unit in units or ():
            self.register(unit)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Mapping[str, Any]],
    ) -> "StaticInspector":
        """
        Build from ``{name: {"type": [...], "members": {member: [...]}}}``.
        """
        units = []
        for name, entry in mapping.items():
            members = tuple(
                MemberMetadata(name=member, markers=frozenset(markers))
                for member, markers in dict(entry.get("members", {})).items()
            )
            units.append(
                UnitMetadata(
                    name=name,
                    type_markers=frozenset(entry.get("type", ())),
                    members=members,
                )
            )
        return cls(units)

    def register(self, unit: UnitMetadata, loader: Optional[Loader] = None) -> None:
        if loader is None:
            self._units[unit.name] = unit
        else:
            self._scoped[(loader, unit.name)] = unit

    def load_and_inspect(self, name: str, loader: Loader) -> UnitMetadata:
        unit = self._scoped.get((loader, name)) or self._units.get(name)
        if unit is None:
            raise LoadError(f"code unit not found: {name}")
        return unit
