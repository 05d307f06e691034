"""Structured PDF text extraction backed by pypdf."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from pypdf import PdfReader

from .models import PrimaryText

LOGGER = logging.getLogger(__name__)


class PrimaryExtractor(Protocol):
    """Extract embedded text from a document, one entry per page."""

    def extract(self, path: Path) -> PrimaryText: ...


class PypdfExtractor:
    """Read the text layer of each PDF page."""

    def extract(self, path: Path) -> PrimaryText:
        """Return the embedded text of every page in ``path``.

        Raises:
            pypdf.errors.PdfReadError: If the file is not a readable PDF.
            OSError: If the file cannot be opened.
        """
        reader = PdfReader(path)
        pages = [
            " ".join((page.extract_text() or "").split())
            for page in reader.pages
        ]
        LOGGER.debug("pypdf detected %d pages in %s", len(pages), path.name)
        return PrimaryText(pages=pages)


__all__ = ["PrimaryExtractor", "PypdfExtractor"]
