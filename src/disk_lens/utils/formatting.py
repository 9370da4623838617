"""Pure formatting utilities for human-readable output.

This module provides stateless formatting functions for converting raw
numbers into human-readable strings. All functions are pure with no side
effects.
"""

from typing import Final

# Binary unit ladder (1024-based)
_SIZE_UNITS: Final[tuple[str, ...]] = ("Bytes", "KB", "MB", "GB", "TB", "PB", "EB")
_KB: Final[int] = 1024

# Time unit constants
_MINUTE: Final[int] = 60
_HOUR: Final[int] = _MINUTE * 60  # 3,600
_DAY: Final[int] = _HOUR * 24  # 86,400


def format_size(bytes: int, *, decimals: int = 2) -> str:
    """Convert bytes to human-readable size format.

    Uses binary units (1024-based) for consistency with system tools.
    Trailing zeros are dropped, so whole values print without decimals.

    Args:
        bytes: Number of bytes to format (must be non-negative)
        decimals: Maximum number of decimal places (default: 2)

    Returns:
        Human-readable string representation of the size

    Examples:
        >>> format_size(0)
        '0 Bytes'
        >>> format_size(512)
        '512 Bytes'
        >>> format_size(1536)
        '1.5 KB'
        >>> format_size(5242880)
        '5 MB'
        >>> format_size(1234567890)
        '1.15 GB'
    """
    if bytes < 0:
        msg = "bytes must be non-negative"
        raise ValueError(msg)
    if decimals < 0:
        msg = "decimals must be non-negative"
        raise ValueError(msg)

    unit_index = 0
    scaled = bytes
    while scaled >= _KB and unit_index < len(_SIZE_UNITS) - 1:
        scaled //= _KB
        unit_index += 1

    if unit_index == 0:
        return f"{bytes} Bytes"

    value = bytes / _KB**unit_index
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit_index]}"


def format_duration(seconds: float) -> str:
    """Convert seconds to human-readable duration format.

    Shows the two most significant units for values over one minute and
    tenths of a second below that.

    Args:
        seconds: Duration in seconds (must be non-negative)

    Returns:
        Human-readable duration string with adaptive granularity

    Examples:
        >>> format_duration(0.42)
        '0.4s'
        >>> format_duration(90)
        '1m 30s'
        >>> format_duration(3665)
        '1h 1m'
        >>> format_duration(90000)
        '1d 1h'
    """
    if seconds < 0:
        msg = "seconds must be non-negative"
        raise ValueError(msg)

    if seconds < _MINUTE:
        return f"{seconds:.1f}s"

    total_seconds = int(seconds)

    if total_seconds >= _DAY:
        days, remaining = divmod(total_seconds, _DAY)
        hours = remaining // _HOUR
        return f"{days}d {hours}h" if hours else f"{days}d"

    if total_seconds >= _HOUR:
        hours, remaining = divmod(total_seconds, _HOUR)
        minutes = remaining // _MINUTE
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"

    minutes, remaining = divmod(total_seconds, _MINUTE)
    return f"{minutes}m {remaining}s" if remaining else f"{minutes}m"
