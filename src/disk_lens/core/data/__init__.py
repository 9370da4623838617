"""Data access layer for the scanning engine."""
