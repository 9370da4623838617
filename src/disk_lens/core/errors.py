"""Error taxonomy for directory scanning and drive enumeration.

Only ``RootUnavailableError`` and ``ScanCancelledError`` ever leave a scan.
``EntryInaccessibleError`` is recorded by the walker and the entry is
skipped; ``DriveQueryError`` is recorded by the drive enumerator and the
volume is omitted from the listing.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base exception for scanning errors."""

    def __init__(self, message: str, *, context: dict[str, object] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Error message
            context: Structured details suitable for ``logging`` extras
        """
        super().__init__(message)
        self.message: str = message
        self.context: dict[str, object] = dict(context or {})


class RootUnavailableError(ScanError):
    """The scan root does not exist or cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        """Initialize the root error.

        Args:
            path: Requested scan root
            reason: Human-readable cause
        """
        super().__init__(
            f"Scan root unavailable: {path} ({reason})",
            context={"path": path, "reason": reason},
        )
        self.path: str = path
        self.reason: str = reason


class EntryInaccessibleError(ScanError):
    """A single entry below the root could not be read."""

    def __init__(self, path: str, original_error: OSError) -> None:
        """Initialize the entry error.

        Args:
            path: Entry that could not be read
            original_error: Underlying operating system error
        """
        super().__init__(
            f"Entry inaccessible: {path} ({original_error.strerror or original_error})",
            context={"path": path, "errno": original_error.errno},
        )
        self.path: str = path
        self.original_error: OSError = original_error


class ScanCancelledError(ScanError):
    """The scan was cancelled or superseded before it finished."""

    def __init__(self, session_id: str | None = None) -> None:
        """Initialize the cancellation error.

        Args:
            session_id: Session that was cancelled, when known
        """
        message = "Scan cancelled" if session_id is None else f"Scan {session_id} cancelled"
        super().__init__(message, context={"session_id": session_id})
        self.session_id: str | None = session_id


class DriveQueryError(ScanError):
    """Capacity figures for a mounted volume could not be read."""

    def __init__(self, mount_point: str, original_error: OSError) -> None:
        """Initialize the drive query error.

        Args:
            mount_point: Volume that failed the query
            original_error: Underlying operating system error
        """
        super().__init__(
            f"Drive query failed for {mount_point}: {original_error}",
            context={"mount_point": mount_point},
        )
        self.mount_point: str = mount_point
        self.original_error: OSError = original_error
