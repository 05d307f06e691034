"""Text acquisition result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel


class AcquiredText(BaseModel):
    """Text read from a document, tagged with the stage that produced it.

    Attributes:
        source: ``primary`` for structured extraction, ``fallback`` for recognition.
        text: Page-delimited document text.
        page_count: Number of pages detected by structured extraction.
    """

    source: Literal["primary", "fallback"]
    text: str
    page_count: int = 0


@dataclass(slots=True)
class PrimaryText:
    """Per-page output of structured extraction; empty strings for blank pages."""

    pages: list[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def text(self) -> str:
        return "".join(
            f"[Page {number}]\n{content}\n\n"
            for number, content in enumerate(self.pages, start=1)
            if content.strip()
        )


__all__ = ["AcquiredText", "PrimaryText"]
