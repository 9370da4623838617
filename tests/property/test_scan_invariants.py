"""Property-based tests for tree invariants of the directory walker.

Random directory layouts are materialized on disk and scanned; the
resulting trees must satisfy, for every depth and mode:
- every enumerated directory's size equals the sum of its children
- no chain below the root is longer than the requested depth
- at sufficient depth, fast and comprehensive scans agree exactly
- the visit count matches the pre-scan estimate
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from disk_lens.core.data.filesystem.scanner import DirectoryWalker
from disk_lens.core.progress.estimator import ItemCountEstimator
from disk_lens.core.progress.reporter import ProgressReporter
from disk_lens.types.models import DiskItem, ScanOptions

type Layout = dict[str, int | Layout]


def build_tree(root: Path, layout: Layout) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for name, content in layout.items():
        if isinstance(content, int):
            _ = (root / name).write_bytes(b"\0" * content)
        else:
            _ = build_tree(root / name, content)
    return root


_names = st.text(alphabet="abcdefghij", min_size=1, max_size=6)

layouts: st.SearchStrategy[Layout] = st.recursive(
    st.dictionaries(_names, st.integers(min_value=0, max_value=2048), max_size=4),
    lambda children: st.dictionaries(
        _names,
        st.one_of(st.integers(min_value=0, max_value=2048), children),
        max_size=4,
    ),
    max_leaves=12,
)

_settings = settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])


def _layout_depth(layout: Layout) -> int:
    depths = [1 + _layout_depth(value) for value in layout.values() if not isinstance(value, int)]
    return max(depths, default=0) + 1


def _file_total(layout: Layout) -> int:
    return sum(value if isinstance(value, int) else _file_total(value) for value in layout.values())


def _aggregated(item: DiskItem) -> bool:
    return all(
        node.size == sum(child.size for child in node.children)
        for node in item.iter_nodes()
        if node.children is not None
    )


@pytest.mark.unit
class TestScanInvariants:
    """Invariants that hold for any directory layout."""

    @_settings
    @given(layout=layouts, depth=st.integers(min_value=1, max_value=4), fast_mode=st.booleans())
    def test_aggregation_and_depth_bound(self, layout: Layout, depth: int, fast_mode: bool) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = build_tree(Path(tmp) / "root", layout)

            tree = DirectoryWalker(workers=2).scan(root, depth, ScanOptions(fast_mode=fast_mode))

        assert _aggregated(tree)
        assert tree.max_depth() <= depth

    @_settings
    @given(layout=layouts)
    def test_full_depth_modes_agree(self, layout: Layout) -> None:
        depth = _layout_depth(layout) + 1
        with tempfile.TemporaryDirectory() as tmp:
            root = build_tree(Path(tmp) / "root", layout)

            fast = DirectoryWalker().scan(root, depth, ScanOptions(fast_mode=True))
            comprehensive = DirectoryWalker(workers=3).scan(root, depth, ScanOptions(fast_mode=False))

        assert fast == comprehensive
        assert fast.size == _file_total(layout)

    @_settings
    @given(layout=layouts, depth=st.integers(min_value=1, max_value=4))
    def test_comprehensive_size_is_exact_at_any_depth(self, layout: Layout, depth: int) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = build_tree(Path(tmp) / "root", layout)

            tree = DirectoryWalker(workers=2).scan(root, depth, ScanOptions(fast_mode=False))

        assert tree.size == _file_total(layout)

    @_settings
    @given(layout=layouts, depth=st.integers(min_value=1, max_value=4), fast_mode=st.booleans())
    def test_estimate_matches_visits(self, layout: Layout, depth: int, fast_mode: bool) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = build_tree(Path(tmp) / "root", layout)
            reporter = ProgressReporter("p", None)

            _ = DirectoryWalker().scan(root, depth, ScanOptions(fast_mode=fast_mode), None, reporter)
            estimate = ItemCountEstimator().estimate(str(root), depth)

        assert estimate == reporter.processed
