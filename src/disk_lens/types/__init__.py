"""Type definitions and protocols for disk-lens.

This package provides:
- Data models (immutable dataclasses)
- Protocol definitions (structural subtyping interfaces)
- Type aliases (PEP 695 modern syntax)
"""

from disk_lens.types.aliases import (
    DriveList,
    PartitionSource,
    ProgressCallback,
    SessionFilter,
    UsageQuery,
)
from disk_lens.types.models import (
    DiskItem,
    DriveInfo,
    ProgressData,
    ScanOptions,
)
from disk_lens.types.protocols import (
    CancellationSource,
    ProgressSink,
)

__all__ = [
    # Type aliases
    "DriveList",
    "PartitionSource",
    "ProgressCallback",
    "SessionFilter",
    "UsageQuery",
    # Data models
    "DiskItem",
    "DriveInfo",
    "ProgressData",
    "ScanOptions",
    # Protocols
    "CancellationSource",
    "ProgressSink",
]
