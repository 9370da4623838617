"""disk-lens - Disk space usage scanning engine.

This package walks directory trees into size-aggregated trees with
throttled, session-tagged progress reporting, single-flight cancellation
and mounted volume enumeration.
"""

from disk_lens.core.orchestrator import ScanOrchestrator
from disk_lens.types.models import DiskItem, DriveInfo, ProgressData, ScanOptions

__all__ = [
    "DiskItem",
    "DriveInfo",
    "ProgressData",
    "ScanOptions",
    "ScanOrchestrator",
]
