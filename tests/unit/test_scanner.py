import os
import zipfile
from pathlib import Path
from typing import List

import pytest

from classpath_scanner.core.config import ScanConfig
from classpath_scanner.core.errors import (
    ConfigurationError,
    ScanError,
    ScanInProgressError,
)
from classpath_scanner.core.inspection import StaticInspector
from classpath_scanner.core.models import Candidate, Loader, PathLoader, ScanState
from classpath_scanner.core.scanner import ClasspathScanner
from classpath_scanner.utils import filesystem


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def simple_root(tmp_path: Path) -> Path:
    root = tmp_path / "simple"
    (root / "a").mkdir(parents=True)
    (root / "a" / "B.class").write_bytes(b"\xca\xfe")
    (root / "a" / "readme.txt").write_text("read me\n", encoding="utf-8")
    return root


@pytest.fixture
def mixed_root(tmp_path: Path) -> Path:
    root = tmp_path / "mixed"
    (root / "x" / "y").mkdir(parents=True)
    (root / "x" / "z").mkdir(parents=True)
    (root / "x" / "y" / "Z.class").write_bytes(b"\xca\xfe")
    (root / "x" / "y" / "Z$Inner.class").write_bytes(b"\xca\xfe")
    (root / "x" / "y" / "data.bin").write_bytes(b"\x00")
    (root / "x" / "z" / "W.class").write_bytes(b"\xca\xfe")
    return root


@pytest.fixture
def jar(tmp_path: Path) -> Path:
    path = tmp_path / "lib.jar"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("lib/Api.class", b"\xca\xfe")
        zf.writestr("lib/api.properties", "k=v\n")
    return path


def collect(scanner: ClasspathScanner) -> List[Candidate]:
    found: List[Candidate] = []
    scanner.scan(found.append)
    return found


# =============================================================================
# Construction & configuration
# =============================================================================

def test_invalid_config_rejected():
    with pytest.raises(ConfigurationError):
        ClasspathScanner(config=ScanConfig(name_separator="/"))


def test_new_scanner_is_idle_and_unscanned():
    scanner = ClasspathScanner()
    assert scanner.state is ScanState.IDLE
    assert scanner.scan_time_ms == -1
    assert scanner.loaders == []
    assert scanner.messages == []


def test_create_reads_classpath_env(simple_root: Path, monkeypatch):
    monkeypatch.setenv("CLASSPATH", str(simple_root))
    scanner = ClasspathScanner.create()

    assert len(scanner.loaders) == 1
    assert len(collect(scanner)) == 2


def test_create_with_custom_key(simple_root: Path, mixed_root: Path, monkeypatch):
    monkeypatch.setenv("MY_PATH", os.pathsep.join([str(simple_root), str(mixed_root)]))
    scanner = ClasspathScanner.create("MY_PATH")
    assert [l.roots for l in scanner.loaders] == [(simple_root,), (mixed_root,)]


def test_add_loader_for_walks_parents_once():
    root = PathLoader(name="root")
    child = PathLoader(name="child", parent=root)
    other = PathLoader(name="other", parent=root)

    scanner = ClasspathScanner().add_loader_for(child).add_loader_for(other)

    assert scanner.loaders == [child, root, other]


def test_add_loader_for_cyclic_chain():
    a = PathLoader(name="a")
    b = PathLoader(name="b", parent=a)
    a.parent = b

    scanner = ClasspathScanner().add_loader_for(a)
    assert scanner.loaders == [a, b]


def test_add_loader_for_ignores_none_and_unknown():
    scanner = ClasspathScanner().add_loader_for(None).add_loader_for(object())
    assert scanner.loaders == []


def test_loaders_returns_copy(simple_root: Path):
    scanner = ClasspathScanner().add_paths(simple_root)
    scanner.loaders.clear()
    assert len(scanner.loaders) == 1


# =============================================================================
# Scenarios
# =============================================================================

def test_no_filters_dispatches_everything(simple_root: Path):
    scanner = ClasspathScanner().add_paths(simple_root)
    found = collect(scanner)

    by_name = {c.resource_name: c for c in found}
    assert set(by_name) == {"a.B", os.path.join("a", "readme.txt")}
    assert by_name["a.B"].is_code_unit is True
    assert by_name[os.path.join("a", "readme.txt")].is_code_unit is False
    assert scanner.accepted_count == scanner.resources_count == 2
    assert scanner.code_units_count == 1


def test_candidates_carry_owning_loader(simple_root: Path, jar: Path):
    dir_loader = PathLoader(name="dir", roots=(simple_root,))
    jar_loader = PathLoader(name="jar", roots=(jar,))
    scanner = ClasspathScanner().add_loader(dir_loader).add_loader(jar_loader)

    found = collect(scanner)

    assert {c.resource_name for c in found if c.loader is jar_loader} == {
        "lib.Api",
        "lib/api.properties",
    }
    assert all(c.loader is dir_loader for c in found[:2])


def test_prefix_and_code_unit_only(mixed_root: Path):
    scanner = (
        ClasspathScanner()
        .add_paths(mixed_root)
        .filter_begin_resource_name("x.y")
        .filter_code_unit_only()
    )

    names = {c.resource_name for c in collect(scanner)}

    assert "x.y.Z" in names
    assert "x.z.W" not in names
    assert "x/y/data.bin" not in names
    assert all(n.startswith("x.y") for n in names)


def test_conjunctive_prefixes(mixed_root: Path):
    scanner = (
        ClasspathScanner()
        .add_paths(mixed_root)
        .filter_begin_resource_name("x.")
        .filter_begin_resource_name("x.z")
    )
    assert [c.resource_name for c in collect(scanner)] == ["x.z.W"]


def test_code_unit_only_and_resource_only(mixed_root: Path):
    scanner = ClasspathScanner().add_paths(mixed_root).filter_code_unit_only()
    assert all(c.is_code_unit for c in collect(scanner))

    scanner.filter_resource_only()
    found = collect(scanner)
    assert found and all(not c.is_code_unit for c in found)


def test_exclude_inner_units(mixed_root: Path):
    scanner = ClasspathScanner().add_paths(mixed_root)
    everything = {c.resource_name for c in collect(scanner)}

    scanner.filter_exclude_inner_units()
    remaining = {c.resource_name for c in collect(scanner)}

    assert everything - remaining == {"x.y.Z$Inner"}


def test_visited_count_includes_filtered_entries(mixed_root: Path):
    scanner = ClasspathScanner().add_paths(mixed_root).filter_resource_only()
    found = collect(scanner)

    assert len(found) == 1
    assert scanner.resources_count == 4
    assert scanner.code_units_count == 3
    assert scanner.accepted_count == 1


def test_scan_without_handler_only_counts(mixed_root: Path):
    inspector = StaticInspector()
    scanner = (
        ClasspathScanner(inspector=inspector)
        .add_paths(mixed_root)
        .filter_type_metadata("Component")
        .scan()
    )

    assert scanner.resources_count == 4
    assert scanner.accepted_count == 0
    assert scanner.messages == []


def test_metadata_filters(mixed_root: Path):
    inspector = StaticInspector.from_mapping(
        {
            "x.y.Z": {"type": ["Component"]},
            "x.z.W": {"members": {"run": ["Scheduled"]}},
            "x.y.Z$Inner": {},
        }
    )
    scanner = ClasspathScanner(inspector=inspector).add_paths(mixed_root)

    scanner.filter_type_metadata("Component")
    assert [c.resource_name for c in collect(scanner)] == ["x.y.Z"]
    assert scanner.messages == []

    scanner.filters.type_metadata = None
    scanner.filter_member_metadata("Scheduled")
    assert [c.resource_name for c in collect(scanner)] == ["x.z.W"]


def test_metadata_load_failures_are_messages(mixed_root: Path):
    scanner = (
        ClasspathScanner()
        .add_paths(mixed_root)
        .filter_type_metadata("Component")
    )

    assert collect(scanner) == []
    assert len(scanner.messages) == 3
    assert all(m.startswith("failed to load code unit") for m in scanner.messages)


# =============================================================================
# Diagnostics & errors
# =============================================================================

def test_broken_archive_does_not_stop_scan(tmp_path: Path, simple_root: Path):
    broken = tmp_path / "broken.jar"
    broken.write_bytes(b"garbage")

    scanner = ClasspathScanner().add_paths(broken).add_paths(simple_root)
    found = collect(scanner)

    assert len(found) == 2
    assert len(scanner.messages) == 1
    assert str(broken) in scanner.messages[0]
    assert all(c.loader.roots == (simple_root,) for c in found)


def test_missing_root_is_reported(tmp_path: Path):
    missing = tmp_path / "gone"
    scanner = ClasspathScanner().add_paths(missing).scan()
    assert scanner.messages == [f"not found: {missing}"]


def test_non_archive_file_root_is_reported(tmp_path: Path):
    notes = tmp_path / "notes.txt"
    notes.write_text("x", encoding="utf-8")
    scanner = ClasspathScanner().add_paths(notes).scan()
    assert scanner.messages == [f"not found: {notes}"]


def test_unsupported_loader_is_reported():
    scanner = ClasspathScanner().add_loader(Loader(name="opaque")).scan()
    assert len(scanner.messages) == 1
    assert scanner.messages[0].startswith("unsupported loader:")


def test_directory_root_failure_propagates(simple_root: Path, monkeypatch):
    def failing_walk(top, onerror=None, **kwargs):
        onerror(PermissionError(13, "Permission denied", str(top)))
        yield from ()

    monkeypatch.setattr(filesystem.os, "walk", failing_walk)
    scanner = ClasspathScanner().add_paths(simple_root)

    with pytest.raises(ScanError):
        scanner.scan()
    assert scanner.state is ScanState.IDLE


def test_handler_errors_propagate(simple_root: Path):
    def handler(candidate):
        raise KeyError(candidate.resource_name)

    scanner = ClasspathScanner().add_paths(simple_root)
    with pytest.raises(KeyError):
        scanner.scan(handler)
    assert scanner.state is ScanState.IDLE


def test_failed_scan_clears_previous_scan_time(simple_root: Path):
    def handler(candidate):
        raise KeyError(candidate.resource_name)

    scanner = ClasspathScanner().add_paths(simple_root)
    scanner.scan()
    assert scanner.scan_time_ms >= 0

    with pytest.raises(KeyError):
        scanner.scan(handler)
    assert scanner.scan_time_ms == -1


def test_rescan_resets_messages(tmp_path: Path, simple_root: Path):
    broken = tmp_path / "broken.zip"
    broken.write_bytes(b"garbage")
    scanner = ClasspathScanner().add_paths(broken).add_paths(simple_root)

    scanner.scan()
    assert len(scanner.messages) == 1

    broken.unlink()
    with zipfile.ZipFile(broken, "w") as zf:
        zf.writestr("ok.txt", "fine")

    scanner.scan()
    assert scanner.messages == []
    assert scanner.resources_count == 3


def test_rescan_does_not_accumulate(simple_root: Path):
    scanner = ClasspathScanner().add_paths(simple_root)
    scanner.scan()
    scanner.scan()
    assert scanner.resources_count == 2


def test_reentrant_scan_rejected(simple_root: Path):
    scanner = ClasspathScanner().add_paths(simple_root)

    def handler(candidate):
        scanner.scan()

    with pytest.raises(ScanInProgressError):
        scanner.scan(handler)


def test_filter_changes_during_scan_apply_next_time(mixed_root: Path):
    scanner = ClasspathScanner().add_paths(mixed_root)
    seen: List[str] = []

    def handler(candidate):
        scanner.filter_resource_only()
        seen.append(candidate.resource_name)

    scanner.scan(handler)
    assert len(seen) == 4

    assert [c.is_code_unit for c in collect(scanner)] == [False]


# =============================================================================
# Reporting
# =============================================================================

def test_scan_time_and_summary(simple_root: Path):
    scanner = ClasspathScanner().add_paths(simple_root).filter_code_unit_only().scan()

    assert scanner.scan_time_ms >= 0
    summary = scanner.summary()
    assert summary["resources"] == 2
    assert summary["code_units"] == 1
    assert summary["filters"]["code_unit_only"] is True
    assert "paths=2" in repr(scanner)


def test_with_inspector_replaces_default(simple_root: Path):
    inspector = StaticInspector.from_mapping({"a.B": {"type": ["Component"]}})
    scanner = (
        ClasspathScanner()
        .add_paths(simple_root)
        .filter_type_metadata("Component")
        .with_inspector(inspector)
    )

    assert [c.resource_name for c in collect(scanner)] == ["a.B"]
    assert scanner.messages == []
