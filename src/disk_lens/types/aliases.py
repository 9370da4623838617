"""Type aliases using modern PEP 695 syntax.

This module defines type aliases for common type patterns throughout
the application, using Python 3.13+ type statement syntax.
"""

from collections.abc import Callable, Iterable

from disk_lens.types.models import DriveInfo, ProgressData

# Plain callable form of a progress receiver
type ProgressCallback = Callable[[ProgressData], None]

# Predicate deciding whether snapshots of a session are still wanted
type SessionFilter = Callable[[str], bool]

# Source of (device, mount point) pairs for drive enumeration
type PartitionSource = Callable[[], Iterable[tuple[str, str]]]

# Capacity query for one mount point: (total, available) in bytes
type UsageQuery = Callable[[str], tuple[int, int]]

# Result of a drive listing
type DriveList = list[DriveInfo]
