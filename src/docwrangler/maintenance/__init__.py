"""Maintenance tasks for managed roots."""

from .cleanup import (
    SYSTEM_MARKERS,
    MetadataStats,
    cleanup_empty_directories,
    cleanup_stale_metadata,
    metadata_stats,
)

__all__ = [
    "SYSTEM_MARKERS",
    "MetadataStats",
    "cleanup_empty_directories",
    "cleanup_stale_metadata",
    "metadata_stats",
]
