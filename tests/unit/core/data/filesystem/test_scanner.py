"""Unit tests for the directory walker.

Tests cover:
- Tree shape and aggregation at the requested depth
- Depth-limited directories (proxy estimate vs full measurement)
- Hidden entries, exclusions, symlinks and inaccessible subtrees
- Root errors (missing root, root file, depth <= 0)
- Cancellation before and during a walk, sequential and parallel, and Ctrl-C
  while parallel workers are running
- Enumeration order and parallel/sequential equivalence
- Literal small layouts (two files plus a subdirectory, a hidden file)
"""

from __future__ import annotations

import _thread
import os
import threading
import time
from pathlib import Path
from typing import override

import pytest

from disk_lens.core.data.filesystem.classifier import ClassifiedEntry, EntryKind, classify_entry
from disk_lens.core.data.filesystem.exclusions import build_exclusion_filter
from disk_lens.core.data.filesystem.scanner import DirectoryWalker
from disk_lens.core.data.filesystem.size_calculator import SizeResolver
from disk_lens.core.errors import RootUnavailableError, ScanCancelledError
from disk_lens.core.progress.reporter import ProgressReporter
from disk_lens.core.session import CancellationToken
from disk_lens.types.models import DiskItem, ProgressData, ScanOptions

FAST = ScanOptions(fast_mode=True, skip_hidden=True)
COMPREHENSIVE = ScanOptions(fast_mode=False, skip_hidden=True)


def _child(item: DiskItem, name: str) -> DiskItem:
    assert item.children is not None
    matches = [child for child in item.children if child.name == name]
    assert len(matches) == 1, f"{name} not found under {item.path}"
    return matches[0]


def _assert_aggregated(item: DiskItem) -> None:
    for node in item.iter_nodes():
        if node.children is not None:
            assert node.size == sum(child.size for child in node.children), node.path


class InterruptingReporter(ProgressReporter):
    """Reporter that interrupts the main thread from a worker, then slows every worker visit."""

    def __init__(self, interrupt_at: int) -> None:
        super().__init__("s-int", None)
        self._interrupt_at: int = interrupt_at
        self._visit_lock: threading.Lock = threading.Lock()
        self.worker_visits: int = 0

    @override
    def record_visit(self, path: str) -> None:
        super().record_visit(path)
        if threading.current_thread() is threading.main_thread():
            return
        with self._visit_lock:
            self.worker_visits += 1
            interrupt = self.worker_visits == self._interrupt_at
        if interrupt:
            _thread.interrupt_main()
        time.sleep(0.02)


@pytest.mark.unit
class TestTreeShape:
    """Test the tree produced for simple layouts."""

    def test_two_levels_fast(self, scenario_tree: Path) -> None:
        """Root -> subdir -> file at depth 2 is fully enumerated."""
        root = DirectoryWalker().scan(scenario_tree, 2, FAST)

        assert root.is_dir is True
        assert root.size == 100
        assert root.name == "root"
        assert root.path == str(scenario_tree)

        subdir = _child(root, "subdir")
        assert subdir.size == 100
        assert subdir.children is not None

        leaf = _child(subdir, "file.bin")
        assert leaf.size == 100
        assert leaf.is_dir is False
        assert leaf.children is None

    def test_depth_one_uses_proxy_for_directories(self, scenario_tree: Path) -> None:
        """At depth 1 the subdirectory is a leaf sized by the proxy estimate."""
        root = DirectoryWalker().scan(scenario_tree, 1, FAST)

        subdir = _child(root, "subdir")
        expected = SizeResolver().directory_proxy_size(str(scenario_tree / "subdir"))
        assert subdir.children is None
        assert subdir.is_dir is True
        assert subdir.size == expected
        assert root.size == expected

    def test_depth_one_comprehensive_measures_truncated_directory(self, mixed_tree: Path) -> None:
        """Comprehensive mode sizes depth-limited directories exactly."""
        root = DirectoryWalker(workers=1).scan(mixed_tree, 1, COMPREHENSIVE)

        docs = _child(root, "docs")
        assert docs.children is None
        assert docs.size == 90
        assert root.size == 100

    def test_aggregation_holds_everywhere(self, mixed_tree: Path) -> None:
        for depth in (1, 2, 3, 4):
            for options in (FAST, COMPREHENSIVE):
                _assert_aggregated(DirectoryWalker().scan(mixed_tree, depth, options))

    def test_depth_bound(self, mixed_tree: Path) -> None:
        """No chain below the root is longer than the requested depth."""
        for depth in (1, 2, 3):
            assert DirectoryWalker().scan(mixed_tree, depth, FAST).max_depth() <= depth

    def test_empty_directory_has_empty_children(self, mixed_tree: Path) -> None:
        root = DirectoryWalker().scan(mixed_tree, 2, FAST)

        empty = _child(root, "empty")
        assert empty.children == ()
        assert empty.size == 0

    def test_full_depth_fast_equals_comprehensive(self, mixed_tree: Path) -> None:
        fast = DirectoryWalker().scan(mixed_tree, 10, FAST)
        comprehensive = DirectoryWalker().scan(mixed_tree, 10, COMPREHENSIVE)

        assert fast.size == comprehensive.size == 100
        assert fast == comprehensive

    def test_children_keep_enumeration_order(self, tree_factory) -> None:
        root_path = tree_factory({f"f{index:02d}": index for index in range(20)})
        with os.scandir(root_path) as entries:
            expected = [entry.name for entry in entries]

        root = DirectoryWalker().scan(root_path, 1, FAST)

        assert root.children is not None
        assert [child.name for child in root.children] == expected


@pytest.mark.unit
class TestFiltering:
    """Test hidden entries, exclusions, symlinks and unreadable entries."""

    def test_hidden_entries_are_omitted(self, mixed_tree: Path) -> None:
        root = DirectoryWalker().scan(mixed_tree, 4, FAST)

        names = {node.name for node in root.iter_nodes()}
        assert ".hidden.txt" not in names
        assert ".cache" not in names
        assert root.size == 100

    def test_hidden_entries_are_included_on_request(self, mixed_tree: Path) -> None:
        options = ScanOptions(fast_mode=True, skip_hidden=False)

        root = DirectoryWalker().scan(mixed_tree, 4, options)

        names = {node.name for node in root.iter_nodes()}
        assert {".hidden.txt", ".cache", "blob"} <= names
        assert root.size == 607

    def test_excluded_entries_are_omitted(self, mixed_tree: Path) -> None:
        walker = DirectoryWalker(exclusion_filter=build_exclusion_filter(["guide", "*.txt"]))

        root = walker.scan(mixed_tree, 4, FAST)

        names = {node.name for node in root.iter_nodes()}
        assert "guide" not in names
        assert "a.txt" not in names
        assert root.size == 20

    @pytest.mark.skipif(os.name == "nt", reason="symlinks unavailable")
    def test_symlinks_are_not_followed(self, tree_factory) -> None:
        root_path = tree_factory({"payload": {"big.bin": 10_000}, "small.bin": 3})
        link = root_path / "shortcut"
        link.symlink_to(root_path / "payload", target_is_directory=True)

        root = DirectoryWalker().scan(root_path, 4, FAST)

        shortcut = _child(root, "shortcut")
        assert shortcut.is_dir is False
        assert shortcut.children is None
        assert shortcut.size == os.lstat(link).st_size
        assert root.size == 10_000 + 3 + shortcut.size

    def test_unreadable_subtree_is_omitted_and_recorded(self, unreadable_dir: Path) -> None:
        walker = DirectoryWalker()

        root = walker.scan(unreadable_dir, 3, FAST)

        assert [child.name for child in root.children or ()] == ["ok.bin"]
        assert root.size == 5
        assert [error.path for error in walker.errors] == [str(unreadable_dir / "locked")]

    def test_unreadable_truncated_directory_in_comprehensive_mode(self, unreadable_dir: Path) -> None:
        walker = DirectoryWalker(workers=1)

        root = walker.scan(unreadable_dir, 1, COMPREHENSIVE)

        assert [child.name for child in root.children or ()] == ["ok.bin"]
        assert len(walker.errors) == 1

    def test_unreadable_hidden_entry_is_not_recorded(self, tree_factory, monkeypatch: pytest.MonkeyPatch) -> None:
        """Hidden entries are dropped before their readability matters."""
        root_path = tree_factory({".secret": 5, "visible.bin": 10, "broken.bin": 1})

        def classify_with_failures(dir_entry: os.DirEntry[str]) -> ClassifiedEntry:
            entry = classify_entry(dir_entry)
            if entry.name in {".secret", "broken.bin"}:
                return ClassifiedEntry(
                    name=entry.name,
                    path=entry.path,
                    kind=EntryKind.INACCESSIBLE,
                    hidden=entry.hidden,
                    error=PermissionError(13, "Permission denied"),
                )
            return entry

        monkeypatch.setattr("disk_lens.core.data.filesystem.scanner.classify_entry", classify_with_failures)
        walker = DirectoryWalker()

        root = walker.scan(root_path, 1, FAST)

        assert root.size == 10
        assert [error.path for error in walker.errors] == [str(root_path / "broken.bin")]


@pytest.mark.unit
class TestRootHandling:
    """Test behaviour at the scan root."""

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        with pytest.raises(RootUnavailableError) as exc_info:
            _ = DirectoryWalker().scan(tmp_path / "missing", 2, FAST)

        assert exc_info.value.path == str(tmp_path / "missing")

    def test_root_file_is_a_leaf(self, tmp_path: Path) -> None:
        target = tmp_path / "single.bin"
        _ = target.write_bytes(b"x" * 42)

        root = DirectoryWalker().scan(target, 3, FAST)

        assert root == DiskItem(name="single.bin", path=str(target), size=42, is_dir=False)

    @pytest.mark.parametrize("depth", [0, -1])
    def test_non_positive_depth_returns_single_leaf(self, scenario_tree: Path, depth: int) -> None:
        root = DirectoryWalker().scan(scenario_tree, depth, FAST)

        assert root.is_dir is True
        assert root.children is None

    def test_zero_depth_comprehensive_measures_everything(self, scenario_tree: Path) -> None:
        root = DirectoryWalker(workers=1).scan(scenario_tree, 0, COMPREHENSIVE)

        assert root.children is None
        assert root.size == 100

    @pytest.mark.skipif(os.name == "nt", reason="symlinks unavailable")
    def test_root_symlink_is_followed_once(self, scenario_tree: Path, tmp_path: Path) -> None:
        link = tmp_path / "alias"
        link.symlink_to(scenario_tree, target_is_directory=True)

        root = DirectoryWalker().scan(link, 2, FAST)

        assert root.size == 100
        assert root.name == "alias"


@pytest.mark.unit
class TestCancellation:
    """Test cooperative cancellation."""

    def test_cancelled_before_start(self, scenario_tree: Path) -> None:
        token = CancellationToken("s-1")
        token.cancel()

        with pytest.raises(ScanCancelledError) as exc_info:
            _ = DirectoryWalker().scan(scenario_tree, 2, FAST, token)
        assert exc_info.value.session_id == "s-1"

    @pytest.mark.parametrize("workers", [1, 4])
    def test_cancelled_mid_walk(self, tree_factory, workers: int) -> None:
        """Cancelling after the first visit stops the walk without a tree."""
        layout = {f"dir{index}": {f"f{inner}": 1 for inner in range(30)} for index in range(6)}
        root_path = tree_factory(layout)
        token = CancellationToken("s-2")
        seen: list[ProgressData] = []

        def sink(snapshot: ProgressData) -> None:
            seen.append(snapshot)
            token.cancel()

        reporter = ProgressReporter("s-2", sink, cancellation=token)
        walker = DirectoryWalker(workers=workers)

        with pytest.raises(ScanCancelledError):
            _ = walker.scan(root_path, 3, COMPREHENSIVE, token, reporter)
        assert len(seen) == 1
        assert reporter.processed < 6 * 31 + 1

    def test_interrupt_stops_parallel_workers(self, tree_factory) -> None:
        """Ctrl-C while waiting on workers stops them without the session token."""
        layout = {f"album{index}": {f"photo{inner}.jpg": 1 for inner in range(60)} for index in range(2)}
        root_path = tree_factory(layout)
        reporter = InterruptingReporter(interrupt_at=3)
        started = time.monotonic()

        with pytest.raises(KeyboardInterrupt):
            _ = DirectoryWalker(workers=2).scan(root_path, 2, COMPREHENSIVE, None, reporter)

        assert time.monotonic() - started < 1.5
        assert reporter.worker_visits < 30


@pytest.mark.unit
class TestParallelWalk:
    """Test the thread pool used by comprehensive scans."""

    def test_parallel_matches_sequential(self, tree_factory) -> None:
        layout = {
            f"d{index}": {"x.bin": index * 10, "nested": {"y.bin": index, "deeper": {"z.bin": 7}}}
            for index in range(8)
        }
        layout["top.bin"] = 999
        root_path = tree_factory(layout)

        sequential = DirectoryWalker(workers=1).scan(root_path, 2, COMPREHENSIVE)
        parallel = DirectoryWalker(workers=4).scan(root_path, 2, COMPREHENSIVE)

        assert parallel == sequential
        _assert_aggregated(parallel)

    def test_visits_are_counted_once_per_node(self, mixed_tree: Path) -> None:
        for workers in (1, 3):
            reporter = ProgressReporter("s", None)
            root = DirectoryWalker(workers=workers).scan(mixed_tree, 3, COMPREHENSIVE, None, reporter)

            assert reporter.processed == sum(1 for _ in root.iter_nodes())

    def test_invalid_worker_count(self) -> None:
        with pytest.raises(ValueError, match="workers"):
            _ = DirectoryWalker(workers=0)


@pytest.mark.unit
class TestScenarios:
    """Small literal layouts with known results."""

    def test_two_files_and_a_subdirectory(self, tree_factory) -> None:
        root_path = tree_factory({"a.bin": 10, "b.bin": 20, "sub": {"c.bin": 5}})

        root = DirectoryWalker().scan(root_path, 2, ScanOptions(fast_mode=True, skip_hidden=False))

        assert root.size == 35
        sub = _child(root, "sub")
        assert sub.is_dir is True
        assert sub.size == 5
        assert sub.children is not None
        assert len(sub.children) == 1
        assert sub.children[0].size == 5
        assert sub.children[0].is_dir is False

    def test_hidden_file_is_left_out(self, tree_factory) -> None:
        root_path = tree_factory({".env": 50, "visible.txt": 10})

        root = DirectoryWalker().scan(root_path, 2, ScanOptions(fast_mode=True, skip_hidden=True))

        assert root.size == 10
        assert root.children is not None
        assert [child.name for child in root.children] == ["visible.txt"]
