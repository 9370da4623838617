"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols that establish
contracts between the scanning engine and its collaborators without
requiring inheritance.
"""

from typing import Protocol, runtime_checkable

from disk_lens.types.models import ProgressData


@runtime_checkable
class ProgressSink(Protocol):
    """Receiver of progress snapshots.

    Implementations must not block the producer for long; the walker calls
    the sink from its own thread while traversal is in flight.
    """

    def __call__(self, snapshot: ProgressData) -> None:
        """Accept one progress snapshot.

        Args:
            snapshot: Snapshot produced by a progress reporter
        """
        ...


@runtime_checkable
class CancellationSource(Protocol):
    """Cooperative cancellation flag polled by long-running traversals."""

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        ...

    def raise_if_cancelled(self) -> None:
        """Raise the cancellation error if cancellation has been requested."""
        ...
