"""
Classpath Scanner

Enumerates every resource reachable from the registered loaders' roots
(directories and ``.jar``/``.zip`` archives), normalizes each entry into a
candidate, runs it through the configured filters and hands the survivors
to a caller supplied handler.

Typical use::

    scanner = (
        ClasspathScanner.create()
        .filter_begin_resource_name("com.example")
        .filter_code_unit_only()
        .filter_exclude_inner_units()
        .scan(lambda candidate: found.append(candidate.resource_name))
    )
    if scanner.messages:
        ...  # some roots were skipped

A scan never fails because of a missing root or a broken archive: those are
reported through ``messages``. An unreadable directory root and exceptions
raised by the handler do propagate.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

from classpath_scanner.utils.filesystem import ScanTimer

from .config import FilterConfig, ScanConfig
from .containers import open_container
from .errors import (
    ConfigurationError,
    ContainerError,
    ScanInProgressError,
)
from .filters import FilterPipeline
from .inspection import UnavailableInspector, UnitInspector
from .models import Candidate, Loader, PathLoader, RawEntry, Root, ScanState
from .names import NameNormalizer
from .paths import iter_loader_chain, loaders_from_environment, resolve_loader

LOGGER_NAME = "classpath_scanner.engine"
logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)

Handler = Callable[[Candidate], None]


class ClasspathScanner:
    """
    Configure-then-scan engine for classpath resources.

    All configuration methods return the scanner itself so calls can be
    chained. State from a previous ``scan`` is discarded when the next one
    starts. One instance must not be used by several threads at once.
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        inspector: Optional[UnitInspector] = None,
    ) -> None:
        self.config = config or ScanConfig()

        config_errors = self.config.validate()
        if config_errors:
            raise ConfigurationError(
                "Invalid scanner configuration: " + "; ".join(config_errors)
            )

        self.inspector: UnitInspector = inspector or UnavailableInspector()
        self.filters = FilterConfig()
        self.normalizer = NameNormalizer(
            code_unit_suffix=self.config.code_unit_suffix,
            name_separator=self.config.name_separator,
        )

        self._loaders: List[Loader] = []
        self._visited: List[RawEntry] = []
        self._messages: List[str] = []
        self._accepted = 0
        self._scan_time_ms = -1
        self._state = ScanState.IDLE

    @classmethod
    def create(
        cls,
        env_key: Optional[str] = None,
        *,
        config: Optional[ScanConfig] = None,
        inspector: Optional[UnitInspector] = None,
    ) -> "ClasspathScanner":
        """
        Build a scanner preloaded with the roots listed in ``env_key``.

        Defaults to the configured ``default_env_key`` (``CLASSPATH``).
        """
        scanner = cls(config=config, inspector=inspector)
        return scanner.add_environment_path_list(env_key or scanner.config.default_env_key)

    # -------------------------------------------------------------------------
    # Loader registration
    # -------------------------------------------------------------------------

    def add_environment_path_list(self, key: str) -> "ClasspathScanner":
        for loader in loaders_from_environment(key):
            self._append_loader(loader)
        return self

    def add_loader_for(self, obj: object) -> "ClasspathScanner":
        if obj is None:
            return self

        loader = resolve_loader(obj)
        if loader is None:
            logger.debug("No loader found for %r", obj)
            return self

        for member in iter_loader_chain(loader):
            self._append_loader(member)
        return self

    def add_loader(self, loader: Loader) -> "ClasspathScanner":
        self._append_loader(loader)
        return self

    def add_paths(self, *paths: Any, name: Optional[str] = None) -> "ClasspathScanner":
        if paths:
            label = name or "paths:" + ",".join(str(p) for p in paths)
            self._append_loader(PathLoader(name=label, roots=tuple(paths)))
        return self

    def with_inspector(self, inspector: UnitInspector) -> "ClasspathScanner":
        self.inspector = inspector
        return self

    def _append_loader(self, loader: Loader) -> None:
        if any(existing is loader for existing in self._loaders):
            return
        self._loaders.append(loader)

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def filter_begin_resource_name(self, prefix: Optional[str]) -> "ClasspathScanner":
        self.filters.add_prefix(prefix)
        return self

    def filter_resource_only(self) -> "ClasspathScanner":
        self.filters.set_resource_only()
        return self

    def filter_code_unit_only(self) -> "ClasspathScanner":
        self.filters.set_code_unit_only()
        return self

    def filter_exclude_inner_units(self) -> "ClasspathScanner":
        self.filters.exclude_inner_units = True
        return self

    def filter_type_metadata(self, predicate_id: str) -> "ClasspathScanner":
        self.filters.type_metadata = predicate_id
        return self

    def filter_member_metadata(self, predicate_id: str) -> "ClasspathScanner":
        self.filters.member_metadata = predicate_id
        return self

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    def scan(self, handler: Optional[Handler] = None) -> "ClasspathScanner":
        """
        Traverse all loaders and dispatch accepted candidates to ``handler``.

        Without a handler entries are only counted; no filtering or loading
        takes place.
        """
        if self._state is not ScanState.IDLE:
            raise ScanInProgressError("scan already in progress on this scanner")

        timer = ScanTimer()
        try:
            self._state = ScanState.RESETTING
            timer.start()
            self._reset()
            pipeline = self._build_pipeline()

            self._state = ScanState.TRAVERSING
            for loader in list(self._loaders):
                self._scan_loader(loader, pipeline, handler)

            self._state = ScanState.FINALIZING
            timer.stop()
            self._scan_time_ms = timer.elapsed_ms
            logger.info(
                "Scanned %d resources (%d code units, %d accepted) in %d ms with %d messages",
                len(self._visited),
                self.code_units_count,
                self._accepted,
                self._scan_time_ms,
                len(self._messages),
            )
        finally:
            self._state = ScanState.IDLE

        return self

    def _reset(self) -> None:
        self._visited.clear()
        self._messages.clear()
        self._accepted = 0
        self._scan_time_ms = -1

    def _build_pipeline(self) -> FilterPipeline:
        filters = self.filters.copy()
        for warning in filters.validate():
            logger.warning("Filter configuration: %s", warning)

        return FilterPipeline(
            filters,
            self.inspector,
            self._messages,
            inner_unit_marker=self.config.inner_unit_marker,
        )

    def _scan_loader(
        self,
        loader: Loader,
        pipeline: FilterPipeline,
        handler: Optional[Handler],
    ) -> None:
        if not isinstance(loader, PathLoader):
            self._record_message(f"unsupported loader: {loader!r}")
            return

        for root in self._roots_of(loader):
            self._scan_root(root, pipeline, handler)

    @staticmethod
    def _roots_of(loader: PathLoader) -> Iterator[Root]:
        for path in loader.roots:
            if str(path):
                yield Root(path=path, loader=loader)

    def _scan_root(
        self,
        root: Root,
        pipeline: FilterPipeline,
        handler: Optional[Handler],
    ) -> None:
        logger.debug("Scanning root %s of %r", root.path, root.loader)

        try:
            container = open_container(root.path, self.config.archive_suffixes)
        except ContainerError as exc:
            self._record_message(str(exc))
            return

        with container:
            for entry in container.entries():
                self._visit(entry, root.loader, pipeline, handler)

    def _visit(
        self,
        entry: RawEntry,
        loader: Loader,
        pipeline: FilterPipeline,
        handler: Optional[Handler],
    ) -> None:
        self._visited.append(entry)

        if handler is None:
            return

        candidate = self.normalizer.normalize(entry, loader)
        if not pipeline.accepts(candidate):
            return

        self._accepted += 1
        handler(candidate)

    def _record_message(self, message: str) -> None:
        logger.warning(message)
        self._messages.append(message)

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    @property
    def loaders(self) -> List[Loader]:
        return list(self._loaders)

    @property
    def messages(self) -> List[str]:
        return list(self._messages)

    @property
    def resources_count(self) -> int:
        """
        Number of entries visited by the last scan, filtered out ones included.
        """
        return len(self._visited)

    @property
    def code_units_count(self) -> int:
        return sum(1 for e in self._visited if self.normalizer.is_code_unit(e.name))

    @property
    def accepted_count(self) -> int:
        return self._accepted

    @property
    def scan_time_ms(self) -> int:
        return self._scan_time_ms

    @property
    def state(self) -> ScanState:
        return self._state

    def summary(self) -> Dict[str, Any]:
        return {
            "resources": self.resources_count,
            "code_units": self.code_units_count,
            "accepted": self._accepted,
            "scan_time_ms": self._scan_time_ms,
            "messages": len(self._messages),
            "loaders": [repr(loader) for loader in self._loaders],
            "filters": self.filters.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"ClasspathScanner(paths={self.resources_count}, "
            f"scan_time={self._scan_time_ms}ms, "
            f"messages={len(self._messages)}, "
            f"loaders={self._loaders!r})"
        )
