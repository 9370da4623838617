"""Depth-limited directory walker producing ``DiskItem`` trees.

The walker:
- never follows symbolic links below the root
- omits hidden entries (when requested), excluded entries and entries it
  cannot read, recording the latter as ``EntryInaccessibleError``
- keeps children in directory enumeration order
- sizes every enumerated directory as the sum of its children
- sizes directories at the depth limit without enumerating them: a proxy
  estimate in fast mode, a full non-displayed walk in comprehensive mode
- polls the cancellation source before every entry
- uses an explicit work stack, so deep trees cannot exhaust the call stack

In comprehensive mode with more than one worker, the root's subdirectories
are walked on a bounded thread pool and reassembled in enumeration order.
"""

from __future__ import annotations

import contextvars
import logging
import os
import stat
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Final

from disk_lens.core.errors import EntryInaccessibleError, RootUnavailableError, ScanCancelledError
from disk_lens.core.progress.reporter import ProgressReporter
from disk_lens.types.models import DiskItem, ScanOptions
from disk_lens.types.protocols import CancellationSource

from .classifier import ClassifiedEntry, EntryKind, classify_entry
from .exclusions import ExclusionFilter
from .size_calculator import SizeMode, SizeResolver, size_from_stat

logger = logging.getLogger(__name__)

DEFAULT_WORKERS: Final[int] = 4

# Bounded waits on worker results keep the calling thread interruptible
RESULT_POLL_SECONDS: Final[float] = 0.05


@dataclass(slots=True)
class _WalkState:
    """Per-scan context shared by every traversal step (and worker thread)."""

    options: ScanOptions
    resolver: SizeResolver
    cancellation: CancellationSource | None
    progress: ProgressReporter | None
    errors: list[EntryInaccessibleError] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)
    aborted: threading.Event = field(default_factory=threading.Event)

    def check(self) -> None:
        if self.aborted.is_set():
            raise ScanCancelledError()
        if self.cancellation is not None:
            self.cancellation.raise_if_cancelled()

    def visit(self, path: str) -> None:
        if self.progress is not None:
            self.progress.record_visit(path)

    def record(self, error: EntryInaccessibleError) -> None:
        with self.lock:
            self.errors.append(error)
        logger.debug("Skipping inaccessible entry", extra=error.context)


@dataclass(slots=True)
class _Frame:
    """A directory whose entries are being resolved."""

    path: str
    name: str
    depth_left: int
    entries: list[ClassifiedEntry]
    index: int = 0
    size: int = 0
    children: list[DiskItem] = field(default_factory=list)

    def to_item(self) -> DiskItem:
        return DiskItem(
            name=self.name,
            path=self.path,
            size=self.size,
            is_dir=True,
            children=tuple(self.children),
        )


def _display_name(path: str) -> str:
    stripped = path.rstrip("/\\")
    return os.path.basename(stripped) or path


def _collect(future: Future[DiskItem | None]) -> DiskItem | None:
    while not future.done():
        _ = wait((future,), timeout=RESULT_POLL_SECONDS)
    return future.result()


class DirectoryWalker:
    """Walker building size-aggregated directory trees.

    A walker instance may be reused; ``errors`` reflects the latest scan.
    """

    def __init__(
        self,
        *,
        exclusion_filter: ExclusionFilter | None = None,
        size_mode: SizeMode = SizeMode.APPARENT,
        workers: int = DEFAULT_WORKERS,
    ) -> None:
        """Initialize the walker.

        Args:
            exclusion_filter: Entries it matches are omitted from the tree
            size_mode: Apparent size or allocated disk usage
            workers: Thread pool size for comprehensive scans (1 disables it)
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.exclusion_filter: ExclusionFilter = exclusion_filter or ExclusionFilter()
        self.size_mode: SizeMode = size_mode
        self.workers: int = workers
        self._errors: tuple[EntryInaccessibleError, ...] = ()

    @property
    def errors(self) -> tuple[EntryInaccessibleError, ...]:
        """Entries skipped during the latest scan because they could not be read."""
        return self._errors

    def scan(
        self,
        root_path: str | os.PathLike[str],
        max_depth: int,
        options: ScanOptions | None = None,
        cancellation: CancellationSource | None = None,
        progress: ProgressReporter | None = None,
    ) -> DiskItem:
        """Scan a directory tree.

        Args:
            root_path: Directory to scan; a symlink here is followed once
            max_depth: Maximum number of edges below the root; ``<= 0``
                returns the root as a single node without children
            options: Fast/comprehensive mode and hidden-entry filtering
            cancellation: Polled before every entry
            progress: Notified once per resolved node

        Returns:
            Root node of the scanned tree

        Raises:
            RootUnavailableError: If the root does not exist or cannot be read
            ScanCancelledError: If cancellation was requested during the scan
        """
        options = options or ScanOptions()
        root = os.path.abspath(os.fspath(root_path))
        state = _WalkState(
            options=options,
            resolver=SizeResolver(fast_mode=options.fast_mode, mode=self.size_mode),
            cancellation=cancellation,
            progress=progress,
        )
        started = time.monotonic()
        logger.info(
            "Starting directory scan",
            extra={
                "path": root,
                "max_depth": max_depth,
                "fast_mode": options.fast_mode,
                "skip_hidden": options.skip_hidden,
            },
        )

        try:
            item = self._scan_root(root, max_depth, state)
            state.check()
        finally:
            self._errors = tuple(state.errors)

        logger.info(
            "Directory scan complete",
            extra={
                "path": root,
                "total_bytes": item.size,
                "skipped_entries": len(self._errors),
                "elapsed_seconds": round(time.monotonic() - started, 3),
            },
        )
        return item

    def _scan_root(self, root: str, max_depth: int, state: _WalkState) -> DiskItem:
        state.check()
        try:
            root_stat = os.stat(root)
        except OSError as exc:
            raise RootUnavailableError(root, exc.strerror or str(exc)) from exc

        name = _display_name(root)
        if not stat.S_ISDIR(root_stat.st_mode):
            item = DiskItem(name=name, path=root, size=size_from_stat(root_stat, self.size_mode), is_dir=False)
            state.visit(root)
            return item

        if max_depth <= 0:
            try:
                size = self._truncated_size(root, state)
            except EntryInaccessibleError as exc:
                raise RootUnavailableError(root, exc.original_error.strerror or str(exc.original_error)) from exc
            state.visit(root)
            return DiskItem(name=name, path=root, size=size, is_dir=True)

        try:
            entries = self._list_directory(root, state)
        except OSError as exc:
            raise RootUnavailableError(root, exc.strerror or str(exc)) from exc

        if not state.options.fast_mode and self.workers > 1:
            return self._walk_root_parallel(root, name, max_depth, entries, state)
        return self._walk(_Frame(root, name, max_depth, entries), state)

    def _list_directory(self, path: str, state: _WalkState) -> list[ClassifiedEntry]:
        """List the entries of ``path`` that belong in the tree.

        Raises:
            OSError: If the directory itself cannot be opened
        """
        listed: list[ClassifiedEntry] = []
        with os.scandir(path) as entries:
            for dir_entry in entries:
                state.check()
                entry = classify_entry(dir_entry)
                if state.options.skip_hidden and entry.hidden:
                    continue
                if entry.kind is EntryKind.INACCESSIBLE:
                    assert entry.error is not None
                    state.record(EntryInaccessibleError(entry.path, entry.error))
                    continue
                if self.exclusion_filter.should_exclude(entry):
                    continue
                listed.append(entry)
        return listed

    def _walk(self, top: _Frame, state: _WalkState) -> DiskItem:
        """Walk from an already listed directory down to the depth limit."""
        stack: list[_Frame] = [top]
        while True:
            frame = stack[-1]
            if frame.index >= len(frame.entries):
                _ = stack.pop()
                item = frame.to_item()
                state.visit(frame.path)
                if not stack:
                    return item
                parent = stack[-1]
                parent.children.append(item)
                parent.size += item.size
                continue

            state.check()
            entry = frame.entries[frame.index]
            frame.index += 1

            if entry.kind is EntryKind.DIRECTORY and frame.depth_left - 1 > 0:
                try:
                    entries = self._list_directory(entry.path, state)
                except OSError as exc:
                    state.record(EntryInaccessibleError(entry.path, exc))
                    continue
                stack.append(_Frame(entry.path, entry.name, frame.depth_left - 1, entries))
                continue

            child = self._resolve_leaf(entry, state)
            if child is not None:
                frame.children.append(child)
                frame.size += child.size

    def _walk_root_parallel(
        self,
        root: str,
        name: str,
        max_depth: int,
        entries: list[ClassifiedEntry],
        state: _WalkState,
    ) -> DiskItem:
        slots: list[DiskItem | Future[DiskItem | None] | None] = []
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="disk-lens-walker") as pool:
            try:
                for entry in entries:
                    state.check()
                    if entry.kind is EntryKind.DIRECTORY:
                        context = contextvars.copy_context()
                        slots.append(pool.submit(context.run, self._resolve_subtree, entry, max_depth - 1, state))
                    else:
                        slots.append(self._resolve_leaf(entry, state))

                children: list[DiskItem] = []
                for slot in slots:
                    child = _collect(slot) if isinstance(slot, Future) else slot
                    if child is not None:
                        children.append(child)
            except BaseException:
                state.aborted.set()
                pool.shutdown(wait=True, cancel_futures=True)
                raise

        item = DiskItem(
            name=name,
            path=root,
            size=sum(child.size for child in children),
            is_dir=True,
            children=tuple(children),
        )
        state.visit(root)
        return item

    def _resolve_subtree(self, entry: ClassifiedEntry, depth_left: int, state: _WalkState) -> DiskItem | None:
        """Resolve one directory below the root (worker thread entry point)."""
        state.check()
        if depth_left <= 0:
            return self._resolve_leaf(entry, state)
        try:
            entries = self._list_directory(entry.path, state)
        except OSError as exc:
            state.record(EntryInaccessibleError(entry.path, exc))
            return None
        return self._walk(_Frame(entry.path, entry.name, depth_left, entries), state)

    def _resolve_leaf(self, entry: ClassifiedEntry, state: _WalkState) -> DiskItem | None:
        """Resolve a node that will carry no children.

        Returns:
            The node, or None if it could not be read
        """
        try:
            if entry.kind is EntryKind.DIRECTORY:
                item = DiskItem(
                    name=entry.name,
                    path=entry.path,
                    size=self._truncated_size(entry.path, state),
                    is_dir=True,
                )
            else:
                item = DiskItem(
                    name=entry.name,
                    path=entry.path,
                    size=state.resolver.entry_size(entry),
                    is_dir=False,
                )
        except EntryInaccessibleError as exc:
            state.record(exc)
            return None
        state.visit(entry.path)
        return item

    def _truncated_size(self, path: str, state: _WalkState) -> int:
        """Size of a directory at the depth limit.

        Raises:
            EntryInaccessibleError: If the directory itself cannot be read
        """
        if state.options.fast_mode:
            return state.resolver.directory_proxy_size(path)
        return self._aggregate_size(path, state)

    def _aggregate_size(self, path: str, state: _WalkState) -> int:
        """Sum every visible file below ``path`` without building nodes.

        Raises:
            EntryInaccessibleError: If ``path`` itself cannot be listed
        """
        total = 0
        pending: list[str] = [path]
        while pending:
            directory = pending.pop()
            try:
                entries = self._list_directory(directory, state)
            except OSError as exc:
                if directory == path:
                    raise EntryInaccessibleError(path, exc) from exc
                state.record(EntryInaccessibleError(directory, exc))
                continue
            for entry in entries:
                state.check()
                if entry.kind is EntryKind.DIRECTORY:
                    pending.append(entry.path)
                    continue
                try:
                    total += state.resolver.entry_size(entry)
                except EntryInaccessibleError as exc:
                    state.record(exc)
        return total
