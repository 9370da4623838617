"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from pathlib import Path

import pytest

# A tree layout: file name -> size in bytes, or directory name -> nested layout
type Layout = Mapping[str, int | Layout]


def build_tree(root: Path, layout: Layout) -> Path:
    """Create files and directories under ``root`` following ``layout``.

    Files are filled with ``size`` zero bytes so that their length is exact.
    """
    root.mkdir(parents=True, exist_ok=True)
    for name, content in layout.items():
        target = root / name
        if isinstance(content, int):
            _ = target.write_bytes(b"\0" * content)
        else:
            _ = build_tree(target, content)
    return root


@pytest.fixture
def scenario_tree(tmp_path: Path) -> Path:
    """Root with one subdirectory holding a single 100-byte file."""
    return build_tree(tmp_path / "root", {"subdir": {"file.bin": 100}})


@pytest.fixture
def mixed_tree(tmp_path: Path) -> Path:
    """A small tree with files at several levels and hidden entries."""
    return build_tree(
        tmp_path / "mixed",
        {
            "a.txt": 10,
            ".hidden.txt": 7,
            "docs": {
                "readme.md": 20,
                "guide": {"intro.md": 30, "deep": {"notes.md": 40}},
            },
            ".cache": {"blob": 500},
            "empty": {},
        },
    )


@pytest.fixture
def unreadable_dir(tmp_path: Path) -> Iterator[Path]:
    """A directory whose permissions deny listing; restored after the test."""
    if os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0):
        pytest.skip("permission checks are not enforced for this user/platform")
    root = build_tree(tmp_path / "perm", {"ok.bin": 5, "locked": {"secret.bin": 50}})
    locked = root / "locked"
    locked.chmod(0o000)
    try:
        yield root
    finally:
        locked.chmod(0o755)


@pytest.fixture
def tree_factory(tmp_path: Path):
    """Build a tree from a layout under ``tmp_path``."""

    def factory(layout: Layout, name: str = "tree") -> Path:
        return build_tree(tmp_path / name, layout)

    return factory
