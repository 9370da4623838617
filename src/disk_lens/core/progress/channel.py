"""Progress channel: publish/subscribe delivery of scan progress snapshots.

Producers publish ``ProgressData`` snapshots on the ``scan-progress`` topic.
Each subscription owns a bounded queue, so a slow consumer never blocks the
walker: surplus in-flight snapshots are dropped, while final snapshots are
always delivered. Snapshots from sessions that are no longer current are
suppressed at publish time.

Subscriptions are scoped resources: use them as context managers, or call
``close()``; once ``close()`` returns, no callback will run again.
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from collections.abc import Iterator
from types import TracebackType
from typing import Final

from disk_lens.types.aliases import ProgressCallback, SessionFilter
from disk_lens.types.models import ProgressData

logger = logging.getLogger(__name__)

PROGRESS_TOPIC: Final[str] = "scan-progress"
DEFAULT_QUEUE_SIZE: Final[int] = 256

_POLL_INTERVAL_SECONDS: Final[float] = 0.05


class ProgressChannelError(Exception):
    """Base exception for progress channel errors."""


class SubscriptionClosedError(ProgressChannelError):
    """Raised when a closed subscription is used."""

    def __init__(self, subscription_id: str) -> None:
        """Initialize the error.

        Args:
            subscription_id: Identifier of the closed subscription
        """
        super().__init__(f"Subscription {subscription_id} is closed")
        self.subscription_id: str = subscription_id


class ProgressSubscription:
    """A scoped receiver of progress snapshots.

    Without a callback, snapshots are pulled with ``get()`` or by iterating.
    With a callback, a dispatcher thread delivers them in publish order.
    """

    def __init__(
        self,
        channel: ProgressChannel,
        *,
        callback: ProgressCallback | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.subscription_id: str = str(uuid.uuid4())
        self._channel: ProgressChannel = channel
        self._callback: ProgressCallback | None = callback
        self._queue: queue.Queue[ProgressData] = queue.Queue(maxsize=queue_size)
        self._lock: threading.Lock = threading.Lock()
        self._callback_lock: threading.RLock = threading.RLock()
        self._closed: bool = False
        self._dropped: int = 0
        self._dispatcher: threading.Thread | None = None

        if callback is not None:
            self._dispatcher = threading.Thread(
                target=self._dispatch_loop,
                name=f"ProgressDispatcher-{self.subscription_id[:8]}",
                daemon=True,
            )
            self._dispatcher.start()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def dropped(self) -> int:
        """Number of in-flight snapshots discarded because the queue was full."""
        with self._lock:
            return self._dropped

    def offer(self, snapshot: ProgressData) -> bool:
        """Enqueue a snapshot without blocking.

        Args:
            snapshot: Snapshot to deliver

        Returns:
            True if the snapshot was queued
        """
        with self._lock:
            if self._closed:
                return False
            try:
                self._queue.put_nowait(snapshot)
                return True
            except queue.Full:
                if not snapshot.final:
                    self._dropped += 1
                    return False
            # Final snapshots evict the oldest queued one.
            try:
                _ = self._queue.get_nowait()
                self._dropped += 1
            except queue.Empty:
                logger.debug("Queue drained concurrently", extra={"subscription_id": self.subscription_id})
            self._queue.put_nowait(snapshot)
            return True

    def get(self, timeout: float | None = None) -> ProgressData | None:
        """Pull the next snapshot.

        Args:
            timeout: Seconds to wait; None waits until a snapshot arrives

        Returns:
            The next snapshot, or None on timeout

        Raises:
            SubscriptionClosedError: If the subscription has been closed
        """
        if self.closed:
            raise SubscriptionClosedError(self.subscription_id)
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def __iter__(self) -> Iterator[ProgressData]:
        """Yield snapshots until a final one arrives or the subscription closes."""
        while not self.closed:
            snapshot = self.get(timeout=_POLL_INTERVAL_SECONDS)
            if snapshot is None:
                continue
            yield snapshot
            if snapshot.final:
                return

    def _dispatch_loop(self) -> None:
        callback = self._callback
        assert callback is not None
        while True:
            try:
                snapshot = self._queue.get(timeout=_POLL_INTERVAL_SECONDS)
            except queue.Empty:
                if self.closed:
                    return
                continue
            with self._callback_lock:
                if self.closed:
                    return
                try:
                    callback(snapshot)
                except Exception:
                    logger.exception(
                        "Progress callback failed",
                        extra={"subscription_id": self.subscription_id},
                    )

    def close(self) -> None:
        """Detach from the channel and stop deliveries.

        Safe to call more than once and from inside the callback.
        """
        with self._callback_lock:
            with self._lock:
                if self._closed:
                    return
                self._closed = True
        self._channel.detach(self)
        dispatcher = self._dispatcher
        if dispatcher is not None and dispatcher is not threading.current_thread():
            dispatcher.join(timeout=1.0)

    def __enter__(self) -> ProgressSubscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ProgressChannel:
    """Named topic fanning progress snapshots out to subscriptions."""

    def __init__(
        self,
        topic: str = PROGRESS_TOPIC,
        *,
        session_filter: SessionFilter | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        """Initialize the channel.

        Args:
            topic: Topic name consumers subscribe to
            session_filter: Predicate telling whether a session is still current
            queue_size: Per-subscription queue capacity
        """
        self.topic: str = topic
        self._session_filter: SessionFilter | None = session_filter
        self._queue_size: int = queue_size
        self._subscriptions: dict[str, ProgressSubscription] = {}
        self._lock: threading.RLock = threading.RLock()
        self._suppressed: int = 0

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    @property
    def suppressed(self) -> int:
        """Number of snapshots discarded because their session was stale."""
        with self._lock:
            return self._suppressed

    def subscribe(self, callback: ProgressCallback | None = None) -> ProgressSubscription:
        """Attach a new subscription.

        Args:
            callback: Invoked from a dispatcher thread for every snapshot;
                omit it to pull snapshots instead

        Returns:
            The subscription, usable as a context manager
        """
        subscription = ProgressSubscription(self, callback=callback, queue_size=self._queue_size)
        with self._lock:
            self._subscriptions[subscription.subscription_id] = subscription
        logger.debug(
            "Registered progress subscriber",
            extra={"subscription_id": subscription.subscription_id, "topic": self.topic},
        )
        return subscription

    def detach(self, subscription: ProgressSubscription) -> None:
        """Remove a subscription; unknown subscriptions are ignored."""
        with self._lock:
            removed = self._subscriptions.pop(subscription.subscription_id, None)
        if removed is not None:
            logger.debug(
                "Unregistered progress subscriber",
                extra={"subscription_id": subscription.subscription_id, "topic": self.topic},
            )

    def publish(self, snapshot: ProgressData) -> int:
        """Deliver a snapshot to every subscription.

        Args:
            snapshot: Snapshot to publish

        Returns:
            Number of subscriptions that accepted the snapshot
        """
        with self._lock:
            if self._session_filter is not None and not self._session_filter(snapshot.session_id):
                self._suppressed += 1
                return 0
            return sum(1 for subscription in self._subscriptions.values() if subscription.offer(snapshot))

    def __call__(self, snapshot: ProgressData) -> None:
        _ = self.publish(snapshot)
