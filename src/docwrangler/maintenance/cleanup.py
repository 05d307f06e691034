"""Housekeeping for managed roots: stale records and empty directories."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from docwrangler.state import DEFAULT_METADATA_FILENAME, DocumentRecord, MetadataStore

LOGGER = logging.getLogger(__name__)

SYSTEM_MARKERS = frozenset({".DS_Store", "Thumbs.db", "desktop.ini", ".localized"})


def _recorded_path(record: DocumentRecord) -> Optional[Path]:
    location = record.current_path or record.original_path
    return Path(location) if location else None


def _is_stale(record: DocumentRecord) -> bool:
    path = _recorded_path(record)
    return path is not None and not path.exists()


async def cleanup_stale_metadata(store: MetadataStore) -> int:
    """Drop records whose document no longer exists.

    The check and the removal run as one serialized store mutation, so
    concurrent writers cannot interleave with it.

    Returns:
        int: Number of records removed.

    Raises:
        MetadataPersistError: If the pruned index could not be written.
    """
    removed = await store.discard(_is_stale)
    for name in removed:
        LOGGER.info("Removed stale metadata record %s", name)
    return len(removed)


def _is_marker(path: Path) -> bool:
    if not path.is_file() or path.is_symlink():
        return False
    return path.name in SYSTEM_MARKERS or path.name.startswith(".")


def cleanup_empty_directories(
    root: Path,
    *,
    inbox_dirname: str = "inbox",
    metadata_filename: str = DEFAULT_METADATA_FILENAME,
) -> int:
    """Remove directories under ``root`` that hold nothing but system marker files.

    Directories are evaluated bottom-up so that emptied parents are removed
    too. The root, its inbox, and the metadata file are never removed, and
    hidden directories are left alone. Marker files such as ``.DS_Store`` are
    deleted just before their directory is removed.

    Args:
        root: Managed root to clean.
        inbox_dirname: Name of the protected inbox directory.
        metadata_filename: Name of the protected metadata file.

    Returns:
        int: Number of directories removed.
    """
    if not root.is_dir():
        return 0
    protected = {root, root / inbox_dirname, root / metadata_filename}
    removed = _prune(root, protected)
    if removed:
        LOGGER.info("Removed %d empty director(ies) under %s", removed, root)
    return removed


def _prune(directory: Path, protected: set[Path]) -> int:
    removed = 0
    for child in sorted(directory.iterdir()):
        if child.is_dir() and not child.is_symlink() and not child.name.startswith("."):
            removed += _prune(child, protected)

    if directory in protected:
        return removed

    entries = list(directory.iterdir())
    if any(not _is_marker(entry) for entry in entries):
        return removed

    try:
        for marker in entries:
            marker.unlink()
        directory.rmdir()
    except OSError as exc:
        LOGGER.warning("Could not remove empty directory %s: %s", directory, exc)
        return removed
    LOGGER.debug("Removed empty directory %s", directory)
    return removed + 1


@dataclass(slots=True)
class MetadataStats:
    """Summary of a managed root's metadata index.

    Attributes:
        total: Number of records.
        stale: Records whose document no longer exists.
        valid: Records whose document exists.
        by_category: Document counts per top-level category folder.
    """

    total: int = 0
    stale: int = 0
    valid: int = 0
    by_category: dict[str, int] = field(default_factory=dict)


async def metadata_stats(store: MetadataStore) -> MetadataStats:
    """Count records, stale records, and documents per category folder."""
    index = await store.read()
    stats = MetadataStats(total=len(index))
    categories: Counter[str] = Counter()
    for record in index.values():
        if _is_stale(record):
            stats.stale += 1
            continue
        stats.valid += 1
        category = _category_of(record, store.root)
        if category is not None:
            categories[category] += 1
    stats.by_category = dict(sorted(categories.items()))
    return stats


def _category_of(record: DocumentRecord, root: Path) -> Optional[str]:
    path = _recorded_path(record)
    if path is None:
        return None
    try:
        relative = path.relative_to(root)
    except ValueError:
        return None
    return relative.parts[0] if len(relative.parts) > 1 else None
