"""Filesystem operations module for classification, sizing and directory walking."""

from __future__ import annotations

from .classifier import ClassifiedEntry, EntryKind, classify_entry, classify_path, is_hidden
from .exclusions import ExclusionFilter, PatternType, build_exclusion_filter
from .scanner import DirectoryWalker
from .size_calculator import SizeMode, SizeResolver

__all__ = [
    "ClassifiedEntry",
    "DirectoryWalker",
    "EntryKind",
    "ExclusionFilter",
    "PatternType",
    "SizeMode",
    "SizeResolver",
    "build_exclusion_filter",
    "classify_entry",
    "classify_path",
    "is_hidden",
]
