"""Tests for primary extraction and recognition fallback."""

from __future__ import annotations

from pathlib import Path

import fitz
import pytest

from conftest import StubPrimary, StubRecognizer, StubRenderer
from docwrangler.config.models import ExtractionSettings
from docwrangler.errors import CapabilityUnavailableError, ExtractionError
from docwrangler.extraction import PrimaryText, PypdfExtractor, TextAcquisition

LONG_PAGE = "Statement of account for January with all transactions listed below in detail."


def _acquisition(primary, renderer=None, recognizer=None) -> TextAcquisition:
    return TextAcquisition(
        primary=primary,
        renderer=renderer or StubRenderer([True]),
        recognizer=recognizer or StubRecognizer(),
    )


def test_primary_text_marks_pages_and_skips_blank_ones() -> None:
    text = PrimaryText(pages=["first", "  ", "third"]).text

    assert text == "[Page 1]\nfirst\n\n[Page 3]\nthird\n\n"


@pytest.mark.asyncio
async def test_sufficient_primary_text_is_used(tmp_path: Path) -> None:
    renderer = StubRenderer([True])
    acquisition = _acquisition(StubPrimary([LONG_PAGE]), renderer)

    acquired = await acquisition.acquire(tmp_path / "doc.pdf")

    assert acquired.source == "primary"
    assert LONG_PAGE in acquired.text
    assert acquired.page_count == 1
    assert renderer.out_dirs == []


@pytest.mark.asyncio
async def test_short_text_falls_back_to_recognition(tmp_path: Path) -> None:
    recognizer = StubRecognizer({"page1.png": "Recognized invoice text"})
    acquisition = _acquisition(StubPrimary(["tiny"]), StubRenderer([True]), recognizer)

    acquired = await acquisition.acquire(tmp_path / "doc.pdf")

    assert acquired.source == "fallback"
    assert acquired.text == "[Page 1]\nRecognized invoice text"


@pytest.mark.asyncio
async def test_thin_multi_page_text_falls_back(tmp_path: Path) -> None:
    pages = ["Page one has a little text", "and page two too"]
    acquisition = _acquisition(StubPrimary(pages), StubRenderer([True, True]))

    acquired = await acquisition.acquire(tmp_path / "doc.pdf")

    assert acquired.source == "fallback"
    assert acquired.text == "[Page 1]\ntext of page1\n\n[Page 2]\ntext of page2"


def test_needs_fallback_thresholds_follow_settings() -> None:
    settings = ExtractionSettings(min_text_length=5, multi_page_min_length=10)
    acquisition = TextAcquisition(
        settings, primary=StubPrimary(), renderer=StubRenderer([]), recognizer=StubRecognizer()
    )

    assert acquisition.needs_fallback("abc", 1)
    assert not acquisition.needs_fallback("abcdefgh", 1)
    assert acquisition.needs_fallback("abcdefgh", 2)
    assert not acquisition.needs_fallback("abcdefghijk", 2)


@pytest.mark.asyncio
async def test_failed_pages_become_placeholders(tmp_path: Path) -> None:
    recognizer = StubRecognizer(failing=["page3.png"])
    acquisition = _acquisition(StubPrimary([""]), StubRenderer([True, False, True]), recognizer)

    acquired = await acquisition.acquire(tmp_path / "doc.pdf")

    sections = acquired.text.split("\n\n")
    assert sections[0] == "[Page 1]\ntext of page1"
    assert sections[1] == "[Page 2]\n[Page 2 could not be converted to image]"
    assert sections[2] == "[Page 3]\n[Error processing page 3]"
    assert "[NOTE: This PDF contains 1 pages, but only 3 could be processed.]" in acquired.text


@pytest.mark.asyncio
async def test_page_count_mismatch_appends_note(tmp_path: Path) -> None:
    acquisition = _acquisition(StubPrimary(["", "", ""]), StubRenderer([True, True]))

    acquired = await acquisition.acquire(tmp_path / "doc.pdf")

    assert acquired.text.endswith(
        "[NOTE: This PDF contains 3 pages, but only 2 could be processed.]"
    )


@pytest.mark.asyncio
async def test_scratch_directory_is_removed(tmp_path: Path) -> None:
    renderer = StubRenderer([True])
    acquisition = _acquisition(StubPrimary([""]), renderer)

    await acquisition.acquire(tmp_path / "doc.pdf")

    assert len(renderer.out_dirs) == 1
    assert not renderer.out_dirs[0].exists()


@pytest.mark.asyncio
async def test_missing_recognizer_raises_capability_unavailable(tmp_path: Path) -> None:
    acquisition = _acquisition(StubPrimary([""]), recognizer=StubRecognizer(is_available=False))

    with pytest.raises(CapabilityUnavailableError):
        await acquisition.acquire(tmp_path / "doc.pdf")


@pytest.mark.asyncio
async def test_primary_failure_raises_extraction_error(tmp_path: Path) -> None:
    acquisition = _acquisition(StubPrimary(error=ValueError("not a pdf")))

    with pytest.raises(ExtractionError, match="not a pdf"):
        await acquisition.acquire(tmp_path / "doc.pdf")


def test_pypdf_extractor_reads_text_layer(tmp_path: Path) -> None:
    path = tmp_path / "letter.pdf"
    with fitz.open() as document:
        page = document.new_page()
        page.insert_text((72, 72), "Dear Anna, your policy renewal is attached.")
        document.new_page()
        document.save(str(path))

    extracted = PypdfExtractor().extract(path)

    assert extracted.page_count == 2
    assert "policy renewal" in extracted.pages[0]
    assert extracted.pages[1] == ""
