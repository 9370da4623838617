"""Logging infrastructure with scan session tracking.

Every record is stamped with the identifier of the scan session active in
the current context (``-`` outside a scan). The identifier lives in a
``ContextVar``; asyncio tasks inherit it automatically and the walker's
worker threads receive it through ``contextvars.copy_context()``.
"""

import contextvars
import logging
import logging.handlers
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Final, override

session_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(session_id)s] - %(message)s"

SYSLOG_LOG_FORMAT: Final[str] = "disk-lens[%(process)d]: %(levelname)s - [%(session_id)s] - %(name)s - %(message)s"

DEFAULT_SYSLOG_ADDRESS: Final[str] = "/dev/log"

_NO_SESSION: Final[str] = "-"


class SessionIDFilter(logging.Filter):
    """Logging filter that adds the active scan session id to log records."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        """Add the session id to the record unless it already carries one.

        Args:
            record: Log record to enhance

        Returns:
            True to allow the record to be logged
        """
        if getattr(record, "session_id", None) is None:
            session_id = get_session_id()
            record.session_id = session_id if session_id is not None else _NO_SESSION
        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    enable_syslog: bool = False,
    syslog_address: str = DEFAULT_SYSLOG_ADDRESS,
    enable_console: bool = True,
) -> None:
    """Configure application logging.

    Console output goes to stderr so that command output on stdout stays
    machine-readable.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_syslog: Also send records to the local syslog daemon
        syslog_address: Syslog socket address
        enable_console: Enable console output handler
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    session_filter = SessionIDFilter()

    if enable_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=syslog_address,
                facility=logging.handlers.SysLogHandler.LOG_USER,
            )
        except OSError as exc:
            print(
                f"Warning: Could not connect to syslog at {syslog_address}: {exc}",
                file=sys.stderr,
            )
        else:
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_LOG_FORMAT))
            syslog_handler.addFilter(session_filter)
            root_logger.addHandler(syslog_handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        console_handler.addFilter(session_filter)
        root_logger.addHandler(console_handler)


def get_session_id() -> str | None:
    """Get the scan session id bound to the current context."""
    return session_id_var.get()


@contextmanager
def session_context(session_id: str) -> Iterator[None]:
    """Bind ``session_id`` to log records emitted inside the block.

    Example:
        >>> with session_context("3f2a..."):
        ...     logger.info("Starting directory scan")
    """
    token = session_id_var.set(session_id)
    try:
        yield
    finally:
        session_id_var.reset(token)
