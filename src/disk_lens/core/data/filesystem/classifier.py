"""Path classification for directory traversal.

Every entry met during a walk is classified exactly once, from a
``lstat``-style query that never follows symbolic links:

- ``DIRECTORY``: a real directory, eligible for descent
- ``FILE``: regular files and special files (FIFOs, sockets, devices)
- ``SYMLINK``: symbolic links and Windows junctions, sized by the link itself
- ``INACCESSIBLE``: metadata could not be read; the walker skips the entry

Hidden detection honours the dot-prefix convention everywhere plus the
platform hidden attribute where the filesystem reports one.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

_HIDDEN_ATTRIBUTE: int = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0x2)
_HIDDEN_FLAG: int = getattr(stat, "UF_HIDDEN", 0x8000)


class EntryKind(str, Enum):
    """Classification of a filesystem entry."""

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"
    INACCESSIBLE = "inaccessible"


@dataclass(slots=True, frozen=True)
class ClassifiedEntry:
    """A filesystem entry together with the metadata used to classify it."""

    name: str
    path: str
    kind: EntryKind
    hidden: bool
    stat_result: os.stat_result | None = None
    error: OSError | None = None


def is_hidden(name: str, stat_result: os.stat_result | None = None) -> bool:
    """Check whether an entry counts as hidden.

    Args:
        name: Entry name (final path component)
        stat_result: Metadata of the entry, if already available

    Returns:
        True for dot-prefixed names, or entries carrying the platform
        hidden attribute (Windows) or hidden flag (macOS/BSD)
    """
    if name.startswith("."):
        return True
    if stat_result is None:
        return False
    attributes: int = getattr(stat_result, "st_file_attributes", 0)
    if attributes & _HIDDEN_ATTRIBUTE:
        return True
    flags: int = getattr(stat_result, "st_flags", 0)
    return bool(flags & _HIDDEN_FLAG)


def _kind_from_mode(mode: int) -> EntryKind:
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    return EntryKind.FILE


def classify_entry(entry: os.DirEntry[str]) -> ClassifiedEntry:
    """Classify a directory entry produced by ``os.scandir``.

    Args:
        entry: Entry to classify

    Returns:
        Classified entry; ``INACCESSIBLE`` entries carry the ``OSError``
    """
    try:
        stat_result = entry.stat(follow_symlinks=False)
    except OSError as exc:
        return ClassifiedEntry(
            name=entry.name,
            path=entry.path,
            kind=EntryKind.INACCESSIBLE,
            hidden=is_hidden(entry.name),
            error=exc,
        )

    kind = _kind_from_mode(stat_result.st_mode)
    if kind is EntryKind.DIRECTORY and entry.is_junction():
        kind = EntryKind.SYMLINK

    return ClassifiedEntry(
        name=entry.name,
        path=entry.path,
        kind=kind,
        hidden=is_hidden(entry.name, stat_result),
        stat_result=stat_result,
    )


def classify_path(path: str | os.PathLike[str]) -> ClassifiedEntry:
    """Classify a path that did not come from a directory listing.

    Args:
        path: Path to classify

    Returns:
        Classified entry; ``INACCESSIBLE`` entries carry the ``OSError``
    """
    path_str = os.fspath(path)
    name = Path(path_str).name or path_str
    try:
        stat_result = os.lstat(path_str)
    except OSError as exc:
        return ClassifiedEntry(
            name=name,
            path=path_str,
            kind=EntryKind.INACCESSIBLE,
            hidden=is_hidden(name),
            error=exc,
        )
    return ClassifiedEntry(
        name=name,
        path=path_str,
        kind=_kind_from_mode(stat_result.st_mode),
        hidden=is_hidden(name, stat_result),
        stat_result=stat_result,
    )
