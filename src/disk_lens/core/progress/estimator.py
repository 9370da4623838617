"""Pre-scan estimation of the number of items a walk will visit."""

from __future__ import annotations

import logging
import os
from typing import Final

from disk_lens.core.data.filesystem.classifier import EntryKind, classify_entry
from disk_lens.core.data.filesystem.exclusions import ExclusionFilter
from disk_lens.types.protocols import CancellationSource

logger = logging.getLogger(__name__)

DEFAULT_ESTIMATE_LIMIT: Final[int] = 50_000


class ItemCountEstimator:
    """Count the nodes a depth-limited walk is expected to produce.

    Applies the same depth bound, hidden filter and exclusions as the
    walker, so on an unchanging tree the estimate equals the final
    processed count. Gives up once ``limit`` items have been counted and
    reports the total as unknown.
    """

    def __init__(
        self,
        *,
        skip_hidden: bool = True,
        exclusion_filter: ExclusionFilter | None = None,
        limit: int = DEFAULT_ESTIMATE_LIMIT,
    ) -> None:
        self.skip_hidden: bool = skip_hidden
        self.exclusion_filter: ExclusionFilter = exclusion_filter or ExclusionFilter()
        self.limit: int = limit

    def estimate(
        self,
        root_path: str,
        max_depth: int,
        cancellation: CancellationSource | None = None,
    ) -> int | None:
        """Estimate the item count for a scan.

        Args:
            root_path: Directory the scan starts from
            max_depth: Depth bound of the scan
            cancellation: Polled once per directory

        Returns:
            Estimated number of items including the root, or None if the
            limit was reached
        """
        count = 1
        pending: list[tuple[str, int]] = [(root_path, max_depth)]
        while pending:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            directory, depth_left = pending.pop()
            if depth_left <= 0:
                continue
            try:
                with os.scandir(directory) as entries:
                    for dir_entry in entries:
                        entry = classify_entry(dir_entry)
                        if entry.kind is EntryKind.INACCESSIBLE:
                            continue
                        if self.skip_hidden and entry.hidden:
                            continue
                        if self.exclusion_filter.should_exclude(entry):
                            continue
                        count += 1
                        if count >= self.limit:
                            logger.debug(
                                "Item estimate limit reached",
                                extra={"path": root_path, "limit": self.limit},
                            )
                            return None
                        if entry.kind is EntryKind.DIRECTORY:
                            pending.append((entry.path, depth_left - 1))
            except OSError as exc:
                logger.debug(
                    "Cannot list directory while estimating",
                    extra={"path": directory, "error": str(exc)},
                )
        return count
