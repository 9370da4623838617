"""Exclusion pattern system for directory traversal.

Excluded entries are omitted from the tree entirely, exactly like hidden
entries when ``skip_hidden`` is set: they contribute neither a node nor
any bytes to their parent's aggregate.
"""

from __future__ import annotations

import fnmatch
from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum
from typing import Final, override

from .classifier import ClassifiedEntry

# Windows system locations that are never worth descending into.
SYSTEM_DIRECTORIES: Final[tuple[str, ...]] = (
    "c:/$recycle.bin",
    "c:/config.msi",
    "c:/system volume information",
    "c:/windows",
    "c:/programdata/packages",
    "c:/programdata/tailscale",
    "c:/programdata/windowsholographicdevices",
    "c:/documents and settings",
)


def _normalize_path(value: str) -> str:
    normalized = value.replace("\\", "/")
    if len(normalized) > 1:
        normalized = normalized.rstrip("/")
    return normalized


class PatternType(str, Enum):
    """What an exclusion pattern is matched against."""

    GLOB = "glob"
    PATH = "path"


class ExclusionPattern(ABC):
    """Base class for exclusion patterns."""

    def __init__(self, pattern: str, case_sensitive: bool = True) -> None:
        """Initialize the exclusion pattern.

        Args:
            pattern: The pattern string
            case_sensitive: Whether pattern matching is case-sensitive
        """
        self.pattern: str = pattern
        self.case_sensitive: bool = case_sensitive

    def _fold(self, value: str) -> str:
        return value if self.case_sensitive else value.lower()

    @abstractmethod
    def matches(self, entry: ClassifiedEntry) -> bool:
        """Check if the pattern matches the given entry.

        Args:
            entry: Classified entry to check

        Returns:
            True if the pattern matches, False otherwise
        """

    @abstractmethod
    def compile(self) -> None:
        """Compile the pattern for repeated matching."""


class GlobPattern(ExclusionPattern):
    """Glob-style pattern matched against the entry name."""

    def __init__(self, pattern: str, case_sensitive: bool = True) -> None:
        super().__init__(pattern, case_sensitive)
        self._compiled: str | None = None

    @override
    def compile(self) -> None:
        self._compiled = self._fold(self.pattern)

    @override
    def matches(self, entry: ClassifiedEntry) -> bool:
        if self._compiled is None:
            self.compile()
        assert self._compiled is not None
        return fnmatch.fnmatchcase(self._fold(entry.name), self._compiled)


class PathPattern(ExclusionPattern):
    """Glob-style pattern matched against the full entry path.

    Both separators are accepted, so ``C:\\Windows`` and ``c:/windows``
    name the same location when matching is case-insensitive.
    """

    def __init__(self, pattern: str, case_sensitive: bool = True) -> None:
        super().__init__(pattern, case_sensitive)
        self._compiled: str | None = None

    @override
    def compile(self) -> None:
        self._compiled = self._fold(_normalize_path(self.pattern))

    @override
    def matches(self, entry: ClassifiedEntry) -> bool:
        if self._compiled is None:
            self.compile()
        assert self._compiled is not None
        return fnmatch.fnmatchcase(self._fold(_normalize_path(entry.path)), self._compiled)


class ExclusionFilter:
    """Exclusion filter supporting multiple pattern types."""

    def __init__(self, case_sensitive: bool = True) -> None:
        """Initialize the exclusion filter.

        Args:
            case_sensitive: Whether pattern matching is case-sensitive
        """
        self.case_sensitive: bool = case_sensitive
        self._patterns: list[ExclusionPattern] = []
        self._compiled: bool = False

    def add_pattern(
        self,
        pattern: str,
        pattern_type: PatternType = PatternType.GLOB,
        *,
        case_sensitive: bool | None = None,
    ) -> None:
        """Add an exclusion pattern.

        Args:
            pattern: Pattern string
            pattern_type: Type of pattern to add
            case_sensitive: Override the filter-wide case sensitivity
        """
        pattern_class = self._get_pattern_class(pattern_type)
        sensitive = self.case_sensitive if case_sensitive is None else case_sensitive
        self._patterns.append(pattern_class(pattern, sensitive))
        self._compiled = False

    def add_patterns(
        self,
        patterns: Iterable[str],
        pattern_type: PatternType = PatternType.GLOB,
        *,
        case_sensitive: bool | None = None,
    ) -> None:
        """Add multiple exclusion patterns of one type."""
        for pattern in patterns:
            self.add_pattern(pattern, pattern_type, case_sensitive=case_sensitive)

    def add_user_patterns(self, patterns: Iterable[str]) -> None:
        """Add patterns from configuration.

        Patterns containing a path separator match the full path; all
        others match the entry name.

        Args:
            patterns: Glob patterns as written by the user
        """
        for pattern in patterns:
            if "/" in pattern or "\\" in pattern:
                self.add_pattern(pattern, PatternType.PATH)
            else:
                self.add_pattern(pattern, PatternType.GLOB)

    def add_system_directories(self) -> None:
        """Add the Windows system directory skip list (case-insensitive)."""
        self.add_patterns(SYSTEM_DIRECTORIES, PatternType.PATH, case_sensitive=False)

    def compile(self) -> None:
        """Compile all patterns."""
        for pattern in self._patterns:
            pattern.compile()
        self._compiled = True

    def should_exclude(self, entry: ClassifiedEntry) -> bool:
        """Check if an entry should be excluded.

        Args:
            entry: Classified entry to check

        Returns:
            True if any pattern matches the entry
        """
        if not self._patterns:
            return False
        if not self._compiled:
            self.compile()
        return any(pattern.matches(entry) for pattern in self._patterns)

    def get_pattern_count(self) -> int:
        """Get the number of patterns configured."""
        return len(self._patterns)

    def _get_pattern_class(self, pattern_type: PatternType) -> type[ExclusionPattern]:
        pattern_classes: dict[PatternType, type[ExclusionPattern]] = {
            PatternType.GLOB: GlobPattern,
            PatternType.PATH: PathPattern,
        }
        return pattern_classes[pattern_type]


def build_exclusion_filter(
    patterns: Iterable[str] = (),
    *,
    skip_system_directories: bool = True,
) -> ExclusionFilter:
    """Build the filter used by a scan from configuration values.

    Args:
        patterns: User glob patterns
        skip_system_directories: Whether to add the Windows skip list

    Returns:
        Ready-to-use exclusion filter
    """
    exclusion_filter = ExclusionFilter()
    if skip_system_directories:
        exclusion_filter.add_system_directories()
    exclusion_filter.add_user_patterns(patterns)
    exclusion_filter.compile()
    return exclusion_filter
