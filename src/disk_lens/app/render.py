"""Text rendering of scan results and drive listings for the terminal."""

from __future__ import annotations

from collections.abc import Sequence

from disk_lens.types.models import DiskItem, DriveInfo, ProgressData
from disk_lens.utils.formatting import format_size

_INDENT = "  "


def sort_by_size(item: DiskItem) -> DiskItem:
    """Return a copy of ``item`` with every child list ordered largest first."""
    if not item.children:
        return item
    children = sorted((sort_by_size(child) for child in item.children), key=lambda child: child.size, reverse=True)
    return DiskItem(
        name=item.name,
        path=item.path,
        size=item.size,
        is_dir=item.is_dir,
        children=tuple(children),
    )


def _tree_line(level: int, marker: str, size: int, label: str, decimals: int) -> str:
    return f"{_INDENT * level}{marker}{format_size(size, decimals=decimals):>12}  {label}"


def render_tree(item: DiskItem, *, top: int | None = None, decimals: int = 2) -> list[str]:
    """Render a tree as indented lines, largest entries first.

    Directories that were not enumerated are marked with ``~`` because
    their size may be an estimate.

    Args:
        item: Root node to render
        top: Show at most this many children per directory
        decimals: Decimal places for sizes

    Returns:
        One line per displayed node
    """
    lines: list[str] = []
    # Entries are either a node to render or an already formatted line.
    stack: list[tuple[DiskItem, int] | str] = [(sort_by_size(item), 0)]
    while stack:
        task = stack.pop()
        if isinstance(task, str):
            lines.append(task)
            continue
        node, level = task
        marker = "~" if node.is_estimate_candidate else " "
        label = f"{node.name}/" if node.is_dir else node.name
        lines.append(_tree_line(level, marker, node.size, label, decimals))
        if not node.children:
            continue

        shown = node.children if top is None else node.children[:top]
        rest = node.children[len(shown) :]
        if rest:
            remainder = sum(child.size for child in rest)
            stack.append(_tree_line(level + 1, " ", remainder, f"({len(rest)} more)", decimals))
        stack.extend((child, level + 1) for child in reversed(shown))
    return lines


def render_drives(drives: Sequence[DriveInfo], *, decimals: int = 2) -> list[str]:
    """Render a drive listing as an aligned table."""
    header = f"{'Name':<24} {'Mount point':<24} {'Total':>12} {'Used':>12} {'Available':>12} {'Use%':>6}"
    lines = [header, "-" * len(header)]
    for drive in drives:
        lines.append(
            f"{drive.name:<24} {drive.mount_point:<24} "
            f"{format_size(drive.total_space, decimals=decimals):>12} "
            f"{format_size(drive.used_space, decimals=decimals):>12} "
            f"{format_size(drive.available_space, decimals=decimals):>12} "
            f"{drive.percent_used:>5.1f}%"
        )
    return lines


def render_progress(snapshot: ProgressData, *, width: int = 60) -> str:
    """Render a single-line progress indicator."""
    path = snapshot.current_path
    if len(path) > width:
        path = "..." + path[-(width - 3) :]
    return f"{snapshot.percent:5.1f}%  {snapshot.processed_items}/{snapshot.total_items} items  {path}"
