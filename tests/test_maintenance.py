"""Tests for stale-record cleanup, empty-directory cleanup, and statistics."""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import pytest

from docwrangler.maintenance import (
    cleanup_empty_directories,
    cleanup_stale_metadata,
    metadata_stats,
)
from docwrangler.state import DocumentMetadata, DocumentRecord, MetadataStore


def _record(name: str, current: Path | str, original: Path | str = "") -> DocumentRecord:
    return DocumentRecord(
        filename=name,
        original_path=str(original),
        current_path=str(current),
        metadata=DocumentMetadata(date=dt.date(2024, 1, 1), title=name),
    )


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


@pytest.mark.asyncio
async def test_stale_records_are_removed_and_others_untouched(store: MetadataStore) -> None:
    present = _touch(store.root / "financial" / "a.pdf")
    await store.update_bulk(
        {
            "a.pdf": _record("a.pdf", present),
            "b.pdf": _record("b.pdf", store.root / "legal" / "b.pdf"),
            "c.pdf": _record("c.pdf", "", original=present),
        }
    )
    before = json.loads(store.path.read_text(encoding="utf-8"))

    removed = await cleanup_stale_metadata(store)

    after = json.loads(store.path.read_text(encoding="utf-8"))
    assert removed == 1
    assert sorted(after) == ["a.pdf", "c.pdf"]
    assert after["a.pdf"] == before["a.pdf"]
    assert after["c.pdf"] == before["c.pdf"]


@pytest.mark.asyncio
async def test_stale_cleanup_keeps_surviving_entries_byte_for_byte(
    store: MetadataStore,
) -> None:
    present = _touch(store.root / "financial" / "a.pdf")
    kept = {
        "filename": "a.pdf",
        "originalPath": "/scans/a.pdf",
        "currentPath": str(present),
        "processedAt": "2024-01-01T00:00:00.000Z",
        "metadata": {"date": "2024-01-01", "title": "Grüße", "categoryHint": "financial"},
    }
    stale = dict(kept, filename="b.pdf", currentPath=str(store.root / "legal" / "b.pdf"))
    store.path.write_text(
        json.dumps({"a.pdf": kept, "b.pdf": stale}, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )

    assert await cleanup_stale_metadata(store) == 1

    expected = json.dumps({"a.pdf": kept}, indent=2, ensure_ascii=False)
    assert store.path.read_text(encoding="utf-8") == expected


@pytest.mark.asyncio
async def test_stale_cleanup_without_stale_records_keeps_index(store: MetadataStore) -> None:
    present = _touch(store.root / "inbox" / "a.pdf")
    await store.update_one("a.pdf", _record("a.pdf", present))
    stamp = store.path.stat().st_mtime_ns

    assert await cleanup_stale_metadata(store) == 0
    assert store.path.stat().st_mtime_ns == stamp


def test_empty_directories_are_removed_bottom_up(tmp_path: Path) -> None:
    root = tmp_path / "docwrangler"
    (root / "old" / "deep" / "deeper").mkdir(parents=True)
    _touch(root / "markers" / ".DS_Store")
    _touch(root / "markers" / "Thumbs.db")
    _touch(root / "kept" / "doc.pdf")
    (root / "kept" / "empty").mkdir()

    removed = cleanup_empty_directories(root)

    assert removed == 5
    assert not (root / "old").exists()
    assert not (root / "markers").exists()
    assert (root / "kept" / "doc.pdf").exists()
    assert not (root / "kept" / "empty").exists()


def test_protected_entries_are_never_removed(tmp_path: Path) -> None:
    root = tmp_path / "docwrangler"
    (root / "inbox").mkdir(parents=True)
    _touch(root / ".metadata.json")
    (root / ".cache").mkdir()

    removed = cleanup_empty_directories(root)

    assert removed == 0
    assert (root / "inbox").is_dir()
    assert (root / ".metadata.json").exists()
    assert (root / ".cache").is_dir()


def test_empty_root_is_kept(tmp_path: Path) -> None:
    root = tmp_path / "docwrangler"
    root.mkdir()

    assert cleanup_empty_directories(root) == 0
    assert root.is_dir()


def test_missing_root_is_a_no_op(tmp_path: Path) -> None:
    assert cleanup_empty_directories(tmp_path / "absent") == 0


@pytest.mark.asyncio
async def test_metadata_stats_counts_categories(store: MetadataStore) -> None:
    await store.update_bulk(
        {
            "a.pdf": _record("a.pdf", _touch(store.root / "financial" / "a.pdf")),
            "b.pdf": _record("b.pdf", _touch(store.root / "financial" / "bank" / "b.pdf")),
            "c.pdf": _record("c.pdf", _touch(store.root / "legal" / "c.pdf")),
            "d.pdf": _record("d.pdf", store.root / "medical" / "d.pdf"),
        }
    )

    stats = await metadata_stats(store)

    assert stats.total == 4
    assert stats.valid == 3
    assert stats.stale == 1
    assert stats.by_category == {"financial": 2, "legal": 1}
