"""Enumeration of mounted volumes and their capacity.

Volumes whose capacity query fails are omitted from the listing; the
failure is logged and kept on the enumerator as ``DriveQueryError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import psutil

from disk_lens.core.errors import DriveQueryError
from disk_lens.types.aliases import DriveList, PartitionSource, UsageQuery
from disk_lens.types.models import DriveInfo

logger = logging.getLogger(__name__)


def psutil_partitions() -> Iterable[tuple[str, str]]:
    """List physical partitions as (device, mount point) pairs."""
    return [(partition.device, partition.mountpoint) for partition in psutil.disk_partitions(all=False)]


def psutil_usage(mount_point: str) -> tuple[int, int]:
    """Query (total, available) bytes for a mount point."""
    usage = psutil.disk_usage(mount_point)
    return usage.total, usage.free


class DriveEnumerator:
    """Lists mounted volumes with total, available and used space."""

    def __init__(
        self,
        *,
        partitions: PartitionSource = psutil_partitions,
        usage: UsageQuery = psutil_usage,
    ) -> None:
        """Initialize the enumerator.

        Args:
            partitions: Source of (device, mount point) pairs
            usage: Capacity query for one mount point
        """
        self._partitions: PartitionSource = partitions
        self._usage: UsageQuery = usage
        self._errors: tuple[DriveQueryError, ...] = ()

    @property
    def errors(self) -> tuple[DriveQueryError, ...]:
        """Volumes omitted from the latest listing because their query failed."""
        return self._errors

    def list_drives(self) -> DriveList:
        """List mounted volumes.

        Mount points are unique in the result; volumes reporting zero
        capacity (pseudo filesystems, empty card readers) are skipped.

        Returns:
            One ``DriveInfo`` per queryable volume, in platform order
        """
        drives: DriveList = []
        errors: list[DriveQueryError] = []
        seen: set[str] = set()

        for device, mount_point in self._partitions():
            if mount_point in seen:
                continue
            seen.add(mount_point)
            try:
                total, available = self._usage(mount_point)
            except OSError as exc:
                error = DriveQueryError(mount_point, exc)
                errors.append(error)
                logger.warning("Omitting volume whose capacity query failed", extra=error.context)
                continue

            if total <= 0:
                logger.debug("Skipping volume with zero capacity", extra={"mount_point": mount_point})
                continue

            drives.append(
                DriveInfo(
                    name=device or mount_point,
                    mount_point=mount_point,
                    total_space=total,
                    available_space=available,
                    used_space=max(total - available, 0),
                )
            )

        self._errors = tuple(errors)
        logger.debug(
            "Enumerated drives",
            extra={"drive_count": len(drives), "failed_count": len(errors)},
        )
        return drives

    async def list_drives_async(self) -> DriveList:
        """List mounted volumes without blocking the event loop."""
        return await asyncio.to_thread(self.list_drives)
