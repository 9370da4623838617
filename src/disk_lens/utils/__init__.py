"""Shared utilities: formatting and logging."""
