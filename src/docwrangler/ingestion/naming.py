"""Deterministic document filenames and collision handling."""

from __future__ import annotations

import datetime as dt
import os
import re
import shutil
from pathlib import Path
from typing import Callable, Optional

from docwrangler.classification.models import split_addressees
from docwrangler.state.models import DocumentMetadata

RESERVED_CHARACTERS = re.compile(r'[<>:"/\\|?*]')
FILENAME_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2})\s+(.+?)\s*(?:\[(.+?)\])?\.pdf$", re.IGNORECASE
)


def build_filename(metadata: DocumentMetadata, *, lowercase: bool = True) -> str:
    """Return ``"{date} {title} [a][b].pdf"`` for the given metadata.

    Filesystem-reserved characters are replaced with ``-``. When there are no
    addressees the bracket group and its separating space are omitted.
    """
    brackets = "".join(f"[{name}]" for name in split_addressees(metadata.addressees))
    stem = f"{metadata.date.isoformat()} {metadata.title}"
    if brackets:
        stem = f"{stem} {brackets}"
    name = RESERVED_CHARACTERS.sub("-", f"{stem}.pdf")
    return name.lower() if lowercase else name


def next_free_path(candidate: Path, taken: Callable[[Path], bool]) -> Path:
    """Return ``candidate`` or the first ``"{stem} (n){suffix}"`` sibling that is not taken."""
    if not taken(candidate):
        return candidate
    counter = 1
    while True:
        option = candidate.with_name(f"{candidate.stem} ({counter}){candidate.suffix}")
        if not taken(option):
            return option
        counter += 1


def move_without_overwrite(source: Path, destination: Path) -> None:
    """Move ``source`` to ``destination``, failing if ``destination`` already exists.

    A hard link claims the destination atomically. Where links are unsupported,
    such as across devices, existence is checked immediately before moving.

    Raises:
        FileExistsError: If ``destination`` is occupied.
        OSError: If the move itself fails.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.link(source, destination)
    except FileExistsError:
        # Case-only rename on a case-insensitive filesystem.
        if not os.path.samefile(source, destination):
            raise
        os.rename(source, destination)
        return
    except OSError:
        if destination.exists():
            raise FileExistsError(f"{destination} already exists") from None
        shutil.move(str(source), str(destination))
        return
    source.unlink()


def parse_filename(name: str) -> Optional[DocumentMetadata]:
    """Recover metadata from a name following the ``date title [addressee].pdf`` pattern.

    Returns:
        Optional[DocumentMetadata]: Metadata with default hint and type, or None when
        the name does not match or carries an impossible date.
    """
    match = FILENAME_PATTERN.match(name)
    if match is None:
        return None
    raw_date, title, addressee = match.groups()
    try:
        document_date = dt.date.fromisoformat(raw_date)
    except ValueError:
        return None
    names = addressee.replace("][", " ") if addressee else None
    return DocumentMetadata(
        date=document_date,
        title=title.strip(),
        addressees=split_addressees(names),
    )


__all__ = [
    "RESERVED_CHARACTERS",
    "FILENAME_PATTERN",
    "build_filename",
    "move_without_overwrite",
    "next_free_path",
    "parse_filename",
]
