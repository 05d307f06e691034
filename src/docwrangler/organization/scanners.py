"""Candidate discovery for inbox-only and whole-tree organization."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional, Protocol

from docwrangler.ingestion.naming import parse_filename
from docwrangler.state.models import DocumentMetadata, DocumentRecord

from .models import Candidate

LOGGER = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".pdf"


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


class ScanStrategy(Protocol):
    """Enumerate the documents of a managed root that should be planned."""

    def scan(self, root: Path) -> Iterator[Path]: ...


class InboxScan:
    """Yield the documents waiting in the inbox."""

    def __init__(self, *, inbox_dirname: str = "inbox") -> None:
        self.inbox_dirname = inbox_dirname

    def scan(self, root: Path) -> Iterator[Path]:
        inbox = root / self.inbox_dirname
        if not inbox.is_dir():
            return
        for path in sorted(inbox.iterdir()):
            if path.is_file() and not path.name.startswith(".") and _is_document(path):
                yield path


class TreeScan:
    """Yield every document under the managed root except the inbox subtree."""

    def __init__(
        self,
        *,
        inbox_dirname: str = "inbox",
        metadata_filename: str = ".metadata.json",
    ) -> None:
        self.inbox_dirname = inbox_dirname
        self.metadata_filename = metadata_filename

    def scan(self, root: Path) -> Iterator[Path]:
        if not root.is_dir():
            return
        for path in sorted(root.rglob("*")):
            if not path.is_file() or not _is_document(path):
                continue
            relative = path.relative_to(root)
            if relative.parts[0] == self.inbox_dirname:
                continue
            if _is_hidden(relative) or relative.name == self.metadata_filename:
                continue
            yield path


def _is_document(path: Path) -> bool:
    return path.suffix.lower() == DOCUMENT_SUFFIX


def synthesize_metadata(
    path: Path, *, include_unmatched: bool = False
) -> Optional[DocumentMetadata]:
    """Recover metadata for a document that has no index record.

    Names following the ``date title [addressee].pdf`` pattern are parsed.
    Other names yield None unless ``include_unmatched`` is set, in which case
    the stem becomes the title and the modification date the document date.
    """
    metadata = parse_filename(path.name)
    if metadata is not None or not include_unmatched:
        return metadata
    modified = dt.datetime.fromtimestamp(path.stat().st_mtime).date()
    return DocumentMetadata(date=modified, title=path.stem.strip() or "Untitled")


def collect_candidates(
    paths: Iterable[Path],
    index: Mapping[str, DocumentRecord],
    root: Path,
    *,
    include_unmatched: bool = False,
) -> list[Candidate]:
    """Pair each scanned document with recorded or synthesized metadata."""
    candidates: list[Candidate] = []
    for path in paths:
        record = index.get(path.name)
        if record is not None:
            metadata = record.metadata
        else:
            metadata = synthesize_metadata(path, include_unmatched=include_unmatched)
            if metadata is None:
                LOGGER.debug("Skipping %s: no record and no recognizable name", path)
                continue
        candidates.append(
            Candidate(
                filename=path.name,
                path=path,
                relative_path=path.relative_to(root).as_posix(),
                metadata=metadata,
                record=record,
            )
        )
    return candidates


__all__ = [
    "ScanStrategy",
    "InboxScan",
    "TreeScan",
    "synthesize_metadata",
    "collect_candidates",
]
