"""Scan orchestrator: the boundary surface of the scanning engine.

The orchestrator wires together the session coordinator, the directory
walker, the item-count estimator, the progress reporter/channel and the
drive enumerator. It is responsible for:

- Starting scans as single-flight sessions (a new scan supersedes the old)
- Estimating the item count so progress has a total
- Publishing throttled progress on the ``scan-progress`` channel
- Binding the session id to log records for the duration of a scan
- Listing mounted volumes

Blocking calls have ``*_async`` counterparts that run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable

from disk_lens.core.config import MainConfig, ScanConfig
from disk_lens.core.data.filesystem.exclusions import build_exclusion_filter
from disk_lens.core.data.filesystem.scanner import DirectoryWalker
from disk_lens.core.drives import DriveEnumerator
from disk_lens.core.errors import EntryInaccessibleError, ScanCancelledError
from disk_lens.core.progress.channel import ProgressChannel, ProgressSubscription
from disk_lens.core.progress.estimator import ItemCountEstimator
from disk_lens.core.progress.reporter import ProgressReporter
from disk_lens.core.session import ScanCoordinator
from disk_lens.types import DiskItem, DriveList, ProgressCallback, ScanOptions
from disk_lens.utils.logging import session_context

__all__ = ["ScanOrchestrator"]

type WalkerFactory = Callable[[ScanConfig], DirectoryWalker]

logger = logging.getLogger(__name__)


def _default_walker_factory(scan_config: ScanConfig) -> DirectoryWalker:
    return DirectoryWalker(
        exclusion_filter=build_exclusion_filter(
            scan_config.exclude_patterns,
            skip_system_directories=scan_config.skip_system_directories,
        ),
        size_mode=scan_config.size_mode,
        workers=scan_config.workers,
    )


class ScanOrchestrator:
    """Coordinate scans, progress delivery and drive enumeration."""

    def __init__(
        self,
        *,
        config: MainConfig | None = None,
        coordinator: ScanCoordinator | None = None,
        channel: ProgressChannel | None = None,
        drive_enumerator: DriveEnumerator | None = None,
        walker_factory: WalkerFactory = _default_walker_factory,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Application configuration (defaults when omitted)
            coordinator: Single-flight session owner
            channel: Progress channel; by default it suppresses stale sessions
            drive_enumerator: Volume lister
            walker_factory: Builds the walker used by each scan
        """
        self.config: MainConfig = config or MainConfig()
        self._coordinator: ScanCoordinator = coordinator or ScanCoordinator()
        self._channel: ProgressChannel = channel or ProgressChannel(
            session_filter=self._coordinator.is_current,
            queue_size=self.config.progress.queue_size,
        )
        self._drive_enumerator: DriveEnumerator = drive_enumerator or DriveEnumerator()
        self._walker_factory: WalkerFactory = walker_factory
        self._last_errors: tuple[EntryInaccessibleError, ...] = ()

    @property
    def progress(self) -> ProgressChannel:
        """Channel carrying ``scan-progress`` snapshots."""
        return self._channel

    @property
    def coordinator(self) -> ScanCoordinator:
        return self._coordinator

    @property
    def last_errors(self) -> tuple[EntryInaccessibleError, ...]:
        """Entries skipped by the most recently finished scan."""
        return self._last_errors

    def subscribe_progress(self, callback: ProgressCallback | None = None) -> ProgressSubscription:
        """Open a scoped subscription to progress snapshots."""
        return self._channel.subscribe(callback)

    def scan_directory(
        self,
        path: str | os.PathLike[str],
        depth: int | None = None,
        options: ScanOptions | None = None,
    ) -> DiskItem:
        """Scan a directory tree, superseding any scan in flight.

        Args:
            path: Directory to scan
            depth: Maximum depth below the root (configured default when None)
            options: Scan options (configured defaults when None)

        Returns:
            Root node of the scanned tree

        Raises:
            RootUnavailableError: If the root does not exist or cannot be read
            ScanCancelledError: If the scan was cancelled or superseded
        """
        scan_config = self.config.scan
        progress_config = self.config.progress
        max_depth = scan_config.default_depth if depth is None else depth
        scan_options = options or scan_config.default_options()
        root = os.path.abspath(os.fspath(path))

        session = self._coordinator.begin(root, max_depth, scan_options)
        walker = self._walker_factory(scan_config)
        reporter = ProgressReporter(
            session.session_id,
            self._channel.publish,
            emit_every=progress_config.emit_every,
            min_interval=progress_config.min_interval_seconds,
            cancellation=session.token,
        )

        with session_context(session.session_id):
            try:
                if progress_config.estimate_total:
                    estimator = ItemCountEstimator(
                        skip_hidden=scan_options.skip_hidden,
                        exclusion_filter=walker.exclusion_filter,
                        limit=progress_config.estimate_limit,
                    )
                    total = estimator.estimate(root, max_depth, session.token)
                    if total is not None:
                        reporter.revise_total(total)

                reporter.start(root)
                item = walker.scan(root, max_depth, scan_options, session.token, reporter)

                if not self._coordinator.is_current(session.session_id):
                    raise ScanCancelledError(session.session_id)
                reporter.complete(root)
            except ScanCancelledError:
                logger.info("Scan resolved as cancelled", extra={"path": root})
                raise
            finally:
                reporter.close()
                if self._coordinator.is_current(session.session_id):
                    self._last_errors = walker.errors
                self._coordinator.finish(session)

        return item

    async def scan_directory_async(
        self,
        path: str | os.PathLike[str],
        depth: int | None = None,
        options: ScanOptions | None = None,
    ) -> DiskItem:
        """Run ``scan_directory`` in a worker thread."""
        return await asyncio.to_thread(self.scan_directory, path, depth, options)

    def cancel_scan(self) -> bool:
        """Cancel the scan in flight, if any.

        Returns:
            True if a scan was cancelled
        """
        return self._coordinator.cancel_current()

    def get_drive_info(self) -> DriveList:
        """List mounted volumes; volumes that fail their query are omitted."""
        return self._drive_enumerator.list_drives()

    async def get_drive_info_async(self) -> DriveList:
        """List mounted volumes without blocking the event loop."""
        return await self._drive_enumerator.list_drives_async()
