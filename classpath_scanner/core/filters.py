from __future__ import annotations

import logging
from typing import List, Optional

from .config import DEFAULT_INNER_UNIT_MARKER, FilterConfig
from .errors import LoadError
from .inspection import UnitInspector, UnitMetadata
from .models import Candidate

LOGGER_NAME = "classpath_scanner.filters"
logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)


class FilterPipeline:
    """
    Ordered accept/reject checks applied to every candidate.

    Cheap name based checks run first; the inspector is only consulted for
    code units that already passed them. Load failures are appended to
    ``messages`` and reject the candidate.
    """

    def __init__(
        self,
        config: FilterConfig,
        inspector: UnitInspector,
        messages: List[str],
        *,
        inner_unit_marker: str = DEFAULT_INNER_UNIT_MARKER,
    ) -> None:
        self.config = config
        self.inspector = inspector
        self.messages = messages
        self.inner_unit_marker = inner_unit_marker

    def accepts(self, candidate: Candidate) -> bool:
        config = self.config

        if config.code_unit_only and not candidate.is_code_unit:
            return False
        if config.resource_only and candidate.is_code_unit:
            return False
        if config.has_metadata_predicates and not candidate.is_code_unit:
            return False
        if (
            config.exclude_inner_units
            and candidate.is_code_unit
            and self.inner_unit_marker in candidate.resource_name
        ):
            return False

        for prefix in config.prefixes:
            if not candidate.resource_name.startswith(prefix):
                return False

        if not config.has_metadata_predicates:
            return True

        return self._accepts_metadata(candidate)

    # -------------------------------------------------------------------------
    # Metadata checks
    # -------------------------------------------------------------------------

    def _accepts_metadata(self, candidate: Candidate) -> bool:
        config = self.config
        name = candidate.resource_name
        unit: Optional[UnitMetadata] = None

        if config.type_metadata is not None:
            try:
                unit = self.inspector.load_and_inspect(name, candidate.loader)
            except LoadError as exc:
                self._diagnose(f"failed to load code unit {name}: {exc}")
                return False
            if not unit.has_type_metadata(config.type_metadata):
                return False

        if config.member_metadata is not None:
            if unit is None:
                try:
                    unit = self.inspector.load_and_inspect(name, candidate.loader)
                except LoadError as exc:
                    self._diagnose(f"failed to inspect members of {name}: {exc}")
                    return False
            if not unit.has_member_metadata(config.member_metadata):
                return False

        return True

    def _diagnose(self, message: str) -> None:
        logger.warning(message)
        self.messages.append(message)
