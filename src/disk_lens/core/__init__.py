"""Scanning engine: walker, progress, sessions, drives and configuration."""
