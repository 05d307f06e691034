"""Shared fixtures and stub collaborators for the docwrangler test-suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

import pytest

from docwrangler.extraction import PrimaryText, TextAcquisition
from docwrangler.state import MetadataStore

CLASSIFIER_REPLY = {
    "date": "2024-03-15",
    "title": "Electricity Bill March",
    "addressees": "Anna",
    "tags": ["utilities", "electricity", "bill"],
    "categoryHint": "financial",
    "docType": "invoice",
}


class StubPrimary:
    """Primary extractor returning fixed pages, or raising ``error``."""

    def __init__(self, pages: Sequence[str] = (), error: Optional[Exception] = None) -> None:
        self.pages = list(pages)
        self.error = error
        self.calls: list[Path] = []

    def extract(self, path: Path) -> PrimaryText:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return PrimaryText(pages=list(self.pages))


class StubRenderer:
    """Renderer writing one placeholder image per entry; ``False`` entries fail to render."""

    def __init__(self, pages: Sequence[bool]) -> None:
        self.pages = list(pages)
        self.out_dirs: list[Path] = []

    def render(self, pdf_path: Path, out_dir: Path) -> list[Optional[Path]]:
        self.out_dirs.append(out_dir)
        images: list[Optional[Path]] = []
        for number, ok in enumerate(self.pages, start=1):
            if not ok:
                images.append(None)
                continue
            target = out_dir / f"page{number}.png"
            target.write_bytes(b"png")
            images.append(target)
        return images


class StubRecognizer:
    """Recognizer mapping image names to text; names listed in ``failing`` raise."""

    def __init__(
        self,
        texts: Optional[Mapping[str, str]] = None,
        *,
        is_available: bool = True,
        failing: Sequence[str] = (),
    ) -> None:
        self.texts = dict(texts or {})
        self.is_available = is_available
        self.failing = set(failing)

    def available(self) -> bool:
        return self.is_available

    def recognize(self, image_path: Path) -> str:
        assert image_path.exists()
        if image_path.name in self.failing:
            raise RuntimeError("recognition crashed")
        return self.texts.get(image_path.name, f"text of {image_path.stem}")


class StubClassifier:
    """Classifier returning a canned reply (or the result of a callable)."""

    def __init__(
        self,
        reply: Any = None,
        *,
        error: Optional[Exception] = None,
    ) -> None:
        self.reply = CLASSIFIER_REPLY if reply is None else reply
        self.error = error
        self.texts: list[str] = []

    async def classify(self, text: str, schema: type) -> Any:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            return self.reply(text)
        return self.reply


class StubPlanner:
    """Planner whose reply is computed from the submitted file descriptions."""

    def __init__(
        self,
        decide: Optional[Callable[[list[dict[str, Any]]], Any]] = None,
        *,
        error: Optional[Exception] = None,
    ) -> None:
        self.decide = decide or by_category_hint
        self.error = error
        self.calls: list[list[dict[str, Any]]] = []

    async def plan(self, files: Sequence[Mapping[str, Any]], guidelines: str) -> Any:
        entries = [dict(entry) for entry in files]
        self.calls.append(entries)
        if self.error is not None:
            raise self.error
        return self.decide(entries)


def by_category_hint(files: list[dict[str, Any]]) -> str:
    return json.dumps(
        [
            {
                "filename": entry["filename"],
                "currentPath": entry["currentPath"],
                "newPath": f"{entry['categoryHint']}/{entry['filename']}",
                "reason": "category hint",
            }
            for entry in files
        ]
    )


@pytest.fixture()
def watched(tmp_path: Path) -> Path:
    folder = tmp_path / "scans"
    folder.mkdir()
    return folder


@pytest.fixture()
def managed_root(watched: Path) -> Path:
    return watched / "docwrangler"


@pytest.fixture()
def store(managed_root: Path) -> MetadataStore:
    return MetadataStore.for_root(managed_root, retry_delay=0)


@pytest.fixture()
def text_acquisition() -> TextAcquisition:
    primary = StubPrimary(["Electricity bill for March, amount due 42.00 EUR. Thank you."])
    return TextAcquisition(
        primary=primary,
        renderer=StubRenderer([True]),
        recognizer=StubRecognizer(),
    )
