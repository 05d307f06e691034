"""Page rasterisation and optical character recognition adapters."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Protocol

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

LOGGER = logging.getLogger(__name__)


class PageRenderer(Protocol):
    """Render each page of a PDF into an image file."""

    def render(self, pdf_path: Path, out_dir: Path) -> list[Optional[Path]]: ...


class Recognizer(Protocol):
    """Recognize text in a single page image."""

    def available(self) -> bool: ...

    def recognize(self, image_path: Path) -> str: ...


class PyMuPDFRenderer:
    """Rasterise PDF pages to PNG files with PyMuPDF.

    Pages that fail to render are reported as ``None`` so callers can keep
    page numbering intact.
    """

    def __init__(self, scale: float = 1.0) -> None:
        self._scale = scale

    def render(self, pdf_path: Path, out_dir: Path) -> list[Optional[Path]]:
        matrix = fitz.Matrix(self._scale, self._scale)
        images: list[Optional[Path]] = []
        with fitz.open(pdf_path) as document:
            for number, page in enumerate(document, start=1):
                target = out_dir / f"page{number}.png"
                try:
                    pixmap = page.get_pixmap(matrix=matrix)
                    if pixmap.width == 0 or pixmap.height == 0:
                        LOGGER.warning("Page %d of %s rendered empty", number, pdf_path.name)
                        images.append(None)
                        continue
                    pixmap.save(target)
                except RuntimeError as exc:
                    LOGGER.warning("Could not render page %d of %s: %s", number, pdf_path.name, exc)
                    images.append(None)
                    continue
                images.append(target)
        return images


class TesseractRecognizer:
    """Recognize page text with the Tesseract engine.

    The engine is only usable on hosts where the ``tesseract`` binary is
    installed; :meth:`available` reports that condition.
    """

    def __init__(self, language: str = "eng") -> None:
        self._language = language

    def available(self) -> bool:
        command = pytesseract.pytesseract.tesseract_cmd
        return shutil.which(command) is not None

    def recognize(self, image_path: Path) -> str:
        with Image.open(image_path) as image:
            return pytesseract.image_to_string(image, lang=self._language)


__all__ = ["PageRenderer", "Recognizer", "PyMuPDFRenderer", "TesseractRecognizer"]
