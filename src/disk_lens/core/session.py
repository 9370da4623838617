"""Scan sessions and single-flight cancellation.

At most one scan is current at any time. Starting a scan cancels the token
of the previous one; the superseded walk notices at its next poll, stops,
and resolves as cancelled without producing a tree. Session identifiers
are stamped on progress snapshots so stale ones can be discarded.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field

from disk_lens.core.errors import ScanCancelledError
from disk_lens.types.models import ScanOptions

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between a scan and its owner."""

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id: str | None = session_id
        self._event: threading.Event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation; idempotent."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise ``ScanCancelledError`` if cancellation has been requested."""
        if self._event.is_set():
            raise ScanCancelledError(self.session_id)


@dataclass(slots=True)
class ScanSession:
    """One requested scan and the token that can stop it."""

    root_path: str
    max_depth: int
    options: ScanOptions
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: float = field(default_factory=time.monotonic)
    token: CancellationToken = field(init=False)

    def __post_init__(self) -> None:
        self.token = CancellationToken(self.session_id)


class ScanCoordinator:
    """Single-flight owner of the current scan session."""

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._current: ScanSession | None = None

    @property
    def current(self) -> ScanSession | None:
        with self._lock:
            return self._current

    def begin(self, root_path: str, max_depth: int, options: ScanOptions) -> ScanSession:
        """Start a new session, cancelling the one in flight.

        Args:
            root_path: Requested scan root
            max_depth: Requested depth bound
            options: Requested scan options

        Returns:
            The new current session
        """
        session = ScanSession(root_path=root_path, max_depth=max_depth, options=options)
        with self._lock:
            previous = self._current
            self._current = session
        if previous is not None:
            previous.token.cancel()
            logger.info(
                "Superseded running scan",
                extra={"session_id": previous.session_id, "superseded_by": session.session_id},
            )
        return session

    def is_current(self, session_id: str) -> bool:
        """Whether ``session_id`` names the current session."""
        with self._lock:
            return self._current is not None and self._current.session_id == session_id

    def finish(self, session: ScanSession) -> None:
        """Release ``session`` if it is still current."""
        with self._lock:
            if self._current is session:
                self._current = None

    def cancel_current(self) -> bool:
        """Cancel the current session, if any.

        Returns:
            True if a session was cancelled
        """
        with self._lock:
            session = self._current
            self._current = None
        if session is None:
            return False
        session.token.cancel()
        logger.info("Cancelled running scan", extra={"session_id": session.session_id})
        return True
