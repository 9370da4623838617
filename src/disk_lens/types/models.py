"""Data models for disk-lens.

This module defines immutable dataclasses used throughout the application
for type-safe data transfer between the scanning engine and its consumers.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class DiskItem:
    """One node of a scanned directory tree.

    A directory that was enumerated carries ``children`` (possibly empty).
    Files, symlinks, and directories cut off by the depth limit carry
    ``children=None``; for a cut-off directory the size may be an estimate.
    """

    name: str
    path: str
    size: int
    is_dir: bool
    children: tuple[DiskItem, ...] | None = None

    @property
    def is_estimate_candidate(self) -> bool:
        """True for directories whose contents were not enumerated."""
        return self.is_dir and self.children is None

    def iter_nodes(self) -> Iterator[DiskItem]:
        """Yield this node and every descendant in pre-order."""
        stack: list[DiskItem] = [self]
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def max_depth(self) -> int:
        """Return the number of edges from this node to its deepest descendant."""
        deepest = 0
        stack: list[tuple[DiskItem, int]] = [(self, 0)]
        while stack:
            node, depth = stack.pop()
            deepest = max(deepest, depth)
            if node.children:
                stack.extend((child, depth + 1) for child in node.children)
        return deepest

    def to_dict(self) -> dict[str, object]:
        """Render the node as a plain mapping.

        The ``children`` key is omitted entirely when the node was not
        enumerated, so consumers can tell an estimate from an empty directory.
        """
        data: dict[str, object] = {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "is_dir": self.is_dir,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(slots=True, frozen=True)
class ScanOptions:
    """Caller-selected scan behaviour."""

    fast_mode: bool = True
    skip_hidden: bool = True


@dataclass(slots=True, frozen=True)
class ProgressData:
    """Immutable progress snapshot published while a scan runs.

    Every snapshot is tagged with the session that produced it so that
    consumers can discard snapshots from a superseded scan.
    """

    session_id: str
    current_path: str
    processed_items: int
    total_items: int
    percent: float
    final: bool = False

    def to_dict(self) -> dict[str, object]:
        """Render the snapshot as a plain mapping."""
        return {
            "session_id": self.session_id,
            "current_path": self.current_path,
            "processed_items": self.processed_items,
            "total_items": self.total_items,
            "percent": self.percent,
            "final": self.final,
        }


@dataclass(slots=True, frozen=True)
class DriveInfo:
    """Capacity figures for one mounted volume."""

    name: str
    mount_point: str
    total_space: int
    available_space: int
    used_space: int

    @property
    def percent_used(self) -> float:
        if self.total_space <= 0:
            return 0.0
        return self.used_space / self.total_space * 100.0

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "mount_point": self.mount_point,
            "total_space": self.total_space,
            "available_space": self.available_space,
            "used_space": self.used_space,
        }
