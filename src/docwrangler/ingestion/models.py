"""Ingestion result models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from docwrangler.errors import WranglerError
from docwrangler.state.models import DocumentMetadata, DocumentRecord


class IngestionStage(str, Enum):
    """States of the per-document ingestion machine."""

    PARSE = "parse"
    EXTRACT_METADATA = "extract_metadata"
    RENAME = "rename"
    DONE = "done"
    ERROR = "error"


@dataclass(slots=True)
class IngestionResult:
    """Outcome of ingesting one document.

    Attributes:
        source_path: File handed to the pipeline.
        stage: ``DONE`` on success, ``ERROR`` otherwise.
        failed_stage: Stage that was running when the error occurred.
        text_source: Which acquisition stage produced the text.
        metadata: Normalized metadata, once extracted.
        final_path: Location of the document after renaming.
        record: Record written to the metadata store.
        error: Failure that ended the run, if any.
    """

    source_path: Path
    stage: IngestionStage = IngestionStage.PARSE
    failed_stage: Optional[IngestionStage] = None
    text_source: Optional[Literal["primary", "fallback"]] = None
    metadata: Optional[DocumentMetadata] = None
    final_path: Optional[Path] = None
    record: Optional[DocumentRecord] = None
    error: Optional[WranglerError] = None

    @property
    def ok(self) -> bool:
        return self.stage is IngestionStage.DONE

    @property
    def filename(self) -> Optional[str]:
        return self.final_path.name if self.final_path is not None else None

    def fail(self, error: WranglerError) -> None:
        self.failed_stage = self.stage
        self.stage = IngestionStage.ERROR
        self.error = error


__all__ = ["IngestionStage", "IngestionResult"]
