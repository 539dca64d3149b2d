"""
Scanner Configuration

Static naming rules (``ScanConfig``) and the mutable filter settings built
up through the scanner's fluent API (``FilterConfig``). A scan works on a
copy of the filter settings, so changes made while a scan is running only
affect later scans.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_CODE_UNIT_SUFFIX = ".class"
DEFAULT_NAME_SEPARATOR = "."
DEFAULT_INNER_UNIT_MARKER = "$"
DEFAULT_ARCHIVE_SUFFIXES = (".jar", ".zip")
DEFAULT_ENV_KEY = "CLASSPATH"


# =============================================================================
# Naming rules
# =============================================================================

@dataclass
class ScanConfig:
    code_unit_suffix: str = DEFAULT_CODE_UNIT_SUFFIX
    name_separator: str = DEFAULT_NAME_SEPARATOR
    inner_unit_marker: str = DEFAULT_INNER_UNIT_MARKER
    archive_suffixes: Tuple[str, ...] = DEFAULT_ARCHIVE_SUFFIXES
    default_env_key: str = DEFAULT_ENV_KEY

    def validate(self) -> List[str]:
        errors: List[str] = []

        if not self.code_unit_suffix or not self.code_unit_suffix.startswith("."):
            errors.append("code_unit_suffix must be a non-empty '.ext' string")

        if len(self.name_separator) != 1:
            errors.append("name_separator must be a single character")
        elif self.name_separator in ("/", "\\"):
            errors.append("name_separator must not be a path separator")

        if len(self.inner_unit_marker) != 1:
            errors.append("inner_unit_marker must be a single character")

        if not self.archive_suffixes:
            errors.append("archive_suffixes must not be empty")

        for suffix in self.archive_suffixes:
            if not suffix.startswith("."):
                errors.append(f"archive suffix must start with '.': {suffix!r}")

        if not self.default_env_key:
            errors.append("default_env_key must not be empty")

        return errors


# =============================================================================
# Filter settings
# =============================================================================

@dataclass
class FilterConfig:
    prefixes: List[str] = field(default_factory=list)
    resource_only: bool = False
    code_unit_only: bool = False
    exclude_inner_units: bool = False
    type_metadata: Optional[str] = None
    member_metadata: Optional[str] = None

    def add_prefix(self, prefix: Optional[str]) -> None:
        if prefix is not None:
            self.prefixes.append(prefix)

    def set_resource_only(self) -> None:
        self.resource_only = True
        self.code_unit_only = False

    def set_code_unit_only(self) -> None:
        self.code_unit_only = True
        self.resource_only = False

    @property
    def has_metadata_predicates(self) -> bool:
        return self.type_metadata is not None or self.member_metadata is not None

    def copy(self) -> "FilterConfig":
        return FilterConfig(
            prefixes=list(self.prefixes),
            resource_only=self.resource_only,
            code_unit_only=self.code_unit_only,
            exclude_inner_units=self.exclude_inner_units,
            type_metadata=self.type_metadata,
            member_metadata=self.member_metadata,
        )

    def validate(self) -> List[str]:
        errors: List[str] = []

        if self.resource_only and self.code_unit_only:
            errors.append("resource_only and code_unit_only are mutually exclusive")

        if self.resource_only and self.has_metadata_predicates:
            errors.append("metadata filters never match when resource_only is set")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prefixes": list(self.prefixes),
            "resource_only": self.resource_only,
            "code_unit_only": self.code_unit_only,
            "exclude_inner_units": self.exclude_inner_units,
            "type_metadata": self.type_metadata,
            "member_metadata": self.member_metadata,
        }
