"""Two-stage text acquisition: structured extraction, then recognition."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Optional

from docwrangler.config.models import ExtractionSettings
from docwrangler.errors import CapabilityUnavailableError, ExtractionError

from .models import AcquiredText
from .primary import PrimaryExtractor, PypdfExtractor
from .recognition import PageRenderer, PyMuPDFRenderer, Recognizer, TesseractRecognizer

LOGGER = logging.getLogger(__name__)


class TextAcquisition:
    """Read document text, falling back to page recognition when the text layer is thin.

    Structured extraction runs first. Its output is considered insufficient
    when it is shorter than ``min_text_length`` characters, or when the
    document has several pages but less than ``multi_page_min_length``
    characters overall; both indicate image-only pages. In that case every
    page is rasterised and passed through the recognizer.
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        *,
        primary: Optional[PrimaryExtractor] = None,
        renderer: Optional[PageRenderer] = None,
        recognizer: Optional[Recognizer] = None,
    ) -> None:
        self._settings = settings or ExtractionSettings()
        self._primary = primary or PypdfExtractor()
        self._renderer = renderer or PyMuPDFRenderer(scale=self._settings.render_scale)
        self._recognizer = recognizer or TesseractRecognizer(language=self._settings.ocr_language)

    async def acquire(self, path: Path) -> AcquiredText:
        """Return the text of ``path`` tagged with the stage that produced it.

        Args:
            path: Document to read.

        Returns:
            AcquiredText: Primary or fallback text.

        Raises:
            CapabilityUnavailableError: If recognition is needed but unavailable.
            ExtractionError: If the document cannot be read.
        """
        try:
            primary = await asyncio.to_thread(self._primary.extract, path)
        except Exception as exc:
            raise ExtractionError(f"Failed to parse {path.name}: {exc}") from exc

        text = primary.text
        if not self.needs_fallback(text, primary.page_count):
            return AcquiredText(source="primary", text=text, page_count=primary.page_count)

        LOGGER.info(
            "Text extraction insufficient for %s (length %d, %d pages); using recognition",
            path.name,
            len(text.strip()),
            primary.page_count,
        )
        recognized = await self._recognize(path, primary.page_count)
        return AcquiredText(source="fallback", text=recognized, page_count=primary.page_count)

    def needs_fallback(self, text: str, page_count: int) -> bool:
        """Return True when primary text is too short to describe the document."""
        length = len(text.strip())
        if length < self._settings.min_text_length:
            return True
        return page_count > 1 and length < self._settings.multi_page_min_length

    async def _recognize(self, path: Path, detected_pages: int) -> str:
        if not self._recognizer.available():
            raise CapabilityUnavailableError(
                "Text recognition is not available on this host; "
                f"{path.name} has no extractable text layer."
            )

        with tempfile.TemporaryDirectory(prefix="docwrangler-ocr-") as session:
            try:
                images = await asyncio.to_thread(self._renderer.render, path, Path(session))
            except Exception as exc:
                raise ExtractionError(f"Failed to convert {path.name} to images: {exc}") from exc

            sections: list[str] = []
            for number, image in enumerate(images, start=1):
                if image is None:
                    sections.append(
                        f"[Page {number}]\n[Page {number} could not be converted to image]"
                    )
                    continue
                try:
                    page_text = await asyncio.to_thread(self._recognizer.recognize, image)
                except Exception as exc:
                    LOGGER.error("Failed to recognize page %d of %s: %s", number, path.name, exc)
                    page_text = f"[Error processing page {number}]"
                sections.append(f"[Page {number}]\n{page_text.strip()}")

        text = "\n\n".join(sections)
        if detected_pages and detected_pages != len(images):
            LOGGER.warning(
                "%s reports %d pages but %d were processed", path.name, detected_pages, len(images)
            )
            text += (
                f"\n\n[NOTE: This PDF contains {detected_pages} pages, "
                f"but only {len(images)} could be processed.]"
            )
        LOGGER.debug(
            "Recognition finished for %s: %d pages, %d characters",
            path.name,
            len(images),
            len(text),
        )
        return text


__all__ = ["TextAcquisition"]
