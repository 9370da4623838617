"""Size resolution for scanned entries.

Two strategies are supported:

- Fast mode trusts the metadata captured while the directory was listed.
- Comprehensive mode re-queries every entry with a fresh ``lstat`` and
  never reuses cached metadata.

Directories cut off by the depth limit are sized with a proxy estimate
(``directory_proxy_size``) that is explicitly approximate.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Final

from disk_lens.core.errors import EntryInaccessibleError

from .classifier import ClassifiedEntry

logger = logging.getLogger(__name__)

# Entries sampled when extrapolating the size of a directory without metadata length
DIRECTORY_SAMPLE_SIZE: Final[int] = 100

# Upper bound on the entry count used for extrapolation
MAX_EXTRAPOLATED_ENTRIES: Final[int] = 10_000

_BLOCK_SIZE: Final[int] = 512


class SizeMode(str, Enum):
    """Enumeration for size calculation modes."""

    APPARENT = "apparent"  # Apparent size (file content size)
    DISK_USAGE = "disk_usage"  # Actual disk usage (allocated blocks)


def size_from_stat(stat_result: os.stat_result, mode: SizeMode = SizeMode.APPARENT) -> int:
    """Compute an entry size from its metadata.

    Args:
        stat_result: Metadata of the entry
        mode: Size calculation mode

    Returns:
        Size in bytes; ``DISK_USAGE`` falls back to the apparent size on
        platforms that do not report allocated blocks
    """
    if mode is SizeMode.DISK_USAGE:
        blocks: int | None = getattr(stat_result, "st_blocks", None)
        if blocks is not None:
            return blocks * _BLOCK_SIZE
    return stat_result.st_size


class SizeResolver:
    """Resolve byte sizes for classified entries.

    Holds no caches: fast mode reuses the metadata gathered during
    classification and comprehensive mode issues a fresh query per entry.
    """

    def __init__(self, *, fast_mode: bool = True, mode: SizeMode = SizeMode.APPARENT) -> None:
        """Initialize the size resolver.

        Args:
            fast_mode: Reuse listing metadata instead of re-querying entries
            mode: Size calculation mode (apparent size vs disk usage)
        """
        self.fast_mode: bool = fast_mode
        self.mode: SizeMode = mode

    def entry_size(self, entry: ClassifiedEntry) -> int:
        """Resolve the size of a file or symlink entry.

        Symlinks are sized by the link itself, never by their target.

        Args:
            entry: Classified file or symlink

        Returns:
            Size in bytes

        Raises:
            EntryInaccessibleError: If fresh metadata cannot be read
        """
        if self.fast_mode and entry.stat_result is not None:
            return size_from_stat(entry.stat_result, self.mode)
        try:
            fresh = os.lstat(entry.path)
        except OSError as exc:
            raise EntryInaccessibleError(entry.path, exc) from exc
        return size_from_stat(fresh, self.mode)

    def directory_proxy_size(self, path: str) -> int:
        """Estimate the size of a directory without walking it.

        Uses the directory's own metadata length when the filesystem
        reports one. Otherwise the first ``DIRECTORY_SAMPLE_SIZE`` entries
        are measured and the average is multiplied by the entry count,
        capped at ``MAX_EXTRAPOLATED_ENTRIES``.

        Args:
            path: Directory to estimate

        Returns:
            Estimated size in bytes

        Raises:
            EntryInaccessibleError: If the directory cannot be read
        """
        try:
            metadata_length = os.stat(path, follow_symlinks=False).st_size
        except OSError as exc:
            raise EntryInaccessibleError(path, exc) from exc
        if metadata_length > 0:
            return metadata_length

        sampled_bytes = 0
        sampled = 0
        count = 0
        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    count += 1
                    if sampled < DIRECTORY_SAMPLE_SIZE:
                        try:
                            sampled_bytes += entry.stat(follow_symlinks=False).st_size
                            sampled += 1
                        except OSError:
                            logger.debug(
                                "Skipping unreadable entry while sampling",
                                extra={"path": entry.path},
                            )
                    if count >= MAX_EXTRAPOLATED_ENTRIES:
                        break
        except OSError as exc:
            raise EntryInaccessibleError(path, exc) from exc

        if sampled == 0:
            return 0
        estimate = sampled_bytes * count // sampled
        logger.debug(
            "Extrapolated directory size",
            extra={"path": path, "sampled": sampled, "entries": count, "estimate": estimate},
        )
        return estimate
