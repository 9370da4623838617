"""Throttled progress reporting for a single scan session.

The reporter turns per-entry visit notifications from the walker into
``ProgressData`` snapshots and hands a throttled subset of them to a sink.

Guarantees:
- ``percent`` never decreases within a session
- in-flight snapshots never report more than ``IN_FLIGHT_CEILING``
- exactly one final snapshot with ``percent == 100.0`` is emitted on success
- nothing is emitted once the session has been cancelled
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Final

from disk_lens.core.progress.percentage_calculator import ProgressPercentageCalculator
from disk_lens.types.models import ProgressData
from disk_lens.types.protocols import CancellationSource, ProgressSink

logger = logging.getLogger(__name__)

# Highest percentage reported before the scan has actually finished
IN_FLIGHT_CEILING: Final[float] = 99.0

# Every one of the first visits is reported
INITIAL_BURST: Final[int] = 100

DEFAULT_EMIT_EVERY: Final[int] = 100
DEFAULT_MIN_INTERVAL_SECONDS: Final[float] = 0.1


class ProgressReporter:
    """Thread-safe, throttled producer of progress snapshots.

    A snapshot is emitted for each of the first ``INITIAL_BURST`` visits,
    then for every ``emit_every``-th visit or whenever ``min_interval``
    seconds have passed since the previous emission.
    """

    def __init__(
        self,
        session_id: str,
        sink: ProgressSink | None,
        *,
        total_estimate: int | None = None,
        emit_every: int = DEFAULT_EMIT_EVERY,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        cancellation: CancellationSource | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the reporter.

        Args:
            session_id: Session tag stamped on every snapshot
            sink: Receiver of emitted snapshots (None discards them)
            total_estimate: Estimated item count, None when unknown
            emit_every: Emit every N visits after the initial burst
            min_interval: Emit at least this often (seconds) while visits arrive
            cancellation: Source polled before emitting
            clock: Monotonic clock, injectable for tests
        """
        if emit_every <= 0:
            raise ValueError("emit_every must be positive")

        self.session_id: str = session_id
        self._sink: ProgressSink | None = sink
        self._total_estimate: int | None = total_estimate
        self._emit_every: int = emit_every
        self._min_interval: float = min_interval
        self._cancellation: CancellationSource | None = cancellation
        self._clock: Callable[[], float] = clock
        self._calculator: ProgressPercentageCalculator = ProgressPercentageCalculator(
            precision=2,
            ceiling=IN_FLIGHT_CEILING,
        )

        self._lock: threading.Lock = threading.Lock()
        self._processed: int = 0
        self._last_percent: float = 0.0
        self._last_emit_at: float = clock()
        self._emitted: int = 0
        self._finished: bool = False

    @property
    def processed(self) -> int:
        with self._lock:
            return self._processed

    @property
    def emitted(self) -> int:
        """Number of snapshots handed to the sink."""
        with self._lock:
            return self._emitted

    @property
    def total_items(self) -> int:
        """Current total: the estimate revised upward by the running count."""
        with self._lock:
            return self._current_total()

    def _current_total(self) -> int:
        if self._total_estimate is None:
            return self._processed
        return max(self._total_estimate, self._processed)

    def _cancelled(self) -> bool:
        return self._cancellation is not None and self._cancellation.cancelled

    def _snapshot(self, current_path: str, *, final: bool) -> ProgressData:
        total = self._current_total()
        if final:
            percent = 100.0
        elif self._total_estimate is None:
            percent = self._last_percent
        else:
            computed = self._calculator.calculate_percentage(self._processed, total)
            percent = max(self._last_percent, computed)
        self._last_percent = percent
        return ProgressData(
            session_id=self.session_id,
            current_path=current_path,
            processed_items=self._processed,
            total_items=total,
            percent=percent,
            final=final,
        )

    def _emit(self, snapshot: ProgressData) -> None:
        self._emitted += 1
        self._last_emit_at = self._clock()
        if self._sink is not None:
            self._sink(snapshot)

    def start(self, root_path: str) -> None:
        """Emit the initial snapshot (nothing processed yet)."""
        with self._lock:
            if self._finished or self._cancelled():
                return
            self._emit(self._snapshot(root_path, final=False))

    def revise_total(self, total: int) -> None:
        """Raise the total estimate; lower values are ignored."""
        with self._lock:
            if self._total_estimate is None or total > self._total_estimate:
                self._total_estimate = total

    def record_visit(self, path: str) -> None:
        """Count one visited entry and emit a snapshot if due.

        Args:
            path: Entry just resolved by the walker
        """
        with self._lock:
            if self._finished:
                return
            self._processed += 1
            if self._cancelled():
                return
            due = (
                self._processed <= INITIAL_BURST
                or self._processed % self._emit_every == 0
                or self._clock() - self._last_emit_at >= self._min_interval
            )
            if due:
                self._emit(self._snapshot(path, final=False))

    def complete(self, root_path: str) -> None:
        """Emit the final 100 % snapshot; later calls are ignored."""
        with self._lock:
            if self._finished or self._cancelled():
                return
            self._finished = True
            self._emit(self._snapshot(root_path, final=True))
        logger.debug(
            "Progress reporting finished",
            extra={"session_id": self.session_id, "processed_items": self._processed, "emitted": self._emitted},
        )

    def close(self) -> None:
        """Stop emitting without a final snapshot (cancelled or failed scan)."""
        with self._lock:
            self._finished = True
