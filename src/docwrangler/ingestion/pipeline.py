"""Per-document ingestion: parse, extract metadata, rename into the inbox, record."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from pathlib import Path
from typing import Iterable, Optional

from docwrangler.classification import (
    Classifier,
    ClassifierResponse,
    decode_reply,
    normalize_metadata,
)
from docwrangler.config.models import ExtractionSettings, IngestionSettings
from docwrangler.errors import ExtractionError, FileSystemError, LLMError, WranglerError
from docwrangler.extraction import TextAcquisition
from docwrangler.state import DocumentMetadata, DocumentRecord, MetadataStore

from .models import IngestionResult, IngestionStage
from .naming import build_filename, move_without_overwrite, next_free_path

LOGGER = logging.getLogger(__name__)


def managed_root_for(folder: Path, settings: Optional[IngestionSettings] = None) -> Path:
    """Return the managed root that documents dropped into ``folder`` belong to."""
    settings = settings or IngestionSettings()
    return folder.expanduser() / settings.managed_dirname


class IngestionPipeline:
    """Drive a single document from arrival to a named, recorded file in the inbox.

    Each run walks ``PARSE -> EXTRACT_METADATA -> RENAME -> DONE``; any failure
    moves the run to ``ERROR`` and is reported on the returned result. Runs for
    different documents may proceed concurrently on one event loop: destination
    names are reserved synchronously so two runs never pick the same name, and
    record writes are serialized by the metadata store.
    """

    def __init__(
        self,
        store: MetadataStore,
        acquisition: TextAcquisition,
        classifier: Optional[Classifier],
        *,
        settings: Optional[IngestionSettings] = None,
        extraction: Optional[ExtractionSettings] = None,
    ) -> None:
        self.store = store
        self.acquisition = acquisition
        self.classifier = classifier
        self.settings = settings or IngestionSettings()
        self.char_limit = (extraction or ExtractionSettings()).classifier_char_limit
        self._reserved: set[Path] = set()

    @property
    def inbox_dir(self) -> Path:
        return self.store.root / self.settings.inbox_dirname

    async def run(self, path: Path) -> IngestionResult:
        """Ingest ``path`` and return the outcome; failures are reported, not raised."""
        result = IngestionResult(source_path=path)
        try:
            if not path.is_file():
                raise FileSystemError(f"Source file {path} does not exist.")

            acquired = await self.acquisition.acquire(path)
            result.text_source = acquired.source
            if not acquired.text.strip():
                raise ExtractionError("No text to process.")

            result.stage = IngestionStage.EXTRACT_METADATA
            result.metadata = await self._extract_metadata(acquired.text)

            result.stage = IngestionStage.RENAME
            await self._rename(path, result.metadata, result)
        except WranglerError as exc:
            LOGGER.error("Ingestion of %s failed during %s: %s", path.name, result.stage.value, exc)
            result.fail(exc)
            return result

        result.stage = IngestionStage.DONE
        LOGGER.info("Ingested %s as %s", path.name, result.filename)
        return result

    async def run_many(self, paths: Iterable[Path]) -> list[IngestionResult]:
        """Ingest several documents concurrently, one result per input in order."""
        return list(await asyncio.gather(*(self.run(path) for path in paths)))

    async def _extract_metadata(self, text: str) -> DocumentMetadata:
        if self.classifier is None:
            raise LLMError("No classifier is configured.")

        try:
            reply = await self.classifier.classify(text[: self.char_limit], ClassifierResponse)
        except LLMError:
            raise
        except Exception as exc:
            raise LLMError(f"Classifier failed: {exc}") from exc

        response = decode_reply(reply, ClassifierResponse, source="Classifier")
        return normalize_metadata(response, self.settings)

    async def _rename(
        self,
        source: Path,
        metadata: DocumentMetadata,
        result: IngestionResult,
    ) -> None:
        inbox = self.inbox_dir
        try:
            await asyncio.to_thread(inbox.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise FileSystemError(f"Unable to create inbox {inbox}: {exc}") from exc

        names_in_use = set(await self.store.read())
        candidate = inbox / build_filename(metadata, lowercase=self.settings.lowercase_filenames)
        while True:
            destination = self._reserve(source, candidate, names_in_use)
            try:
                if destination != source:
                    await asyncio.to_thread(move_without_overwrite, source, destination)
            except FileExistsError:
                LOGGER.debug("%s appeared before the move; choosing another name", destination)
                continue
            except OSError as exc:
                raise FileSystemError(
                    f"Failed to move {source} to {destination}: {exc}"
                ) from exc
            finally:
                self._reserved.discard(destination)
            break
        result.final_path = destination

        record = DocumentRecord(
            filename=destination.name,
            original_path=str(source),
            current_path=str(destination),
            processed_at=dt.datetime.now(dt.timezone.utc),
            metadata=metadata,
        )
        await self.store.update_one(destination.name, record)
        result.record = record

    def _reserve(self, source: Path, candidate: Path, names_in_use: set[str]) -> Path:
        # Runs without yielding to the loop, so reservations cannot interleave.
        def taken(option: Path) -> bool:
            if option == source:
                return False
            return option in self._reserved or option.exists() or option.name in names_in_use

        destination = next_free_path(candidate, taken)
        self._reserved.add(destination)
        return destination


__all__ = ["IngestionPipeline", "managed_root_for"]
