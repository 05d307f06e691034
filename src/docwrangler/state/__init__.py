"""Metadata index persistence with serialized, atomic writes."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError

from docwrangler.errors import MetadataPersistError

from .models import DocumentMetadata, DocumentRecord, MetadataIndex

LOGGER = logging.getLogger(__name__)

DEFAULT_METADATA_FILENAME = ".metadata.json"

# Applies a change to the raw JSON index in place; returns (caller result, index changed).
# Entries a mutation does not touch are written back exactly as they were read.
RawIndex = Dict[str, Any]
Mutation = Callable[[RawIndex], tuple[Any, bool]]


def _dump(record: DocumentRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


@dataclass(slots=True)
class _PendingMutation:
    label: str
    apply: Mutation
    future: asyncio.Future = field(repr=False)


class MetadataStore:
    """Persistent filename -> record mapping with a single-writer FIFO queue.

    Every mutation is queued and executed by one worker task, one at a time:
    the current index is read from disk, the change applied, and the result
    written to a temporary file that is then renamed over the canonical path.
    Readers never take part in the queue; because the replace is atomic they
    see either the state before or after a write, never a partial one.
    """

    def __init__(
        self,
        path: Path,
        *,
        persist_attempts: int = 3,
        retry_delay: float = 0.1,
    ) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON index file.
            persist_attempts: Number of write attempts per mutation.
            retry_delay: Seconds to wait between failed write attempts.
        """
        self._path = path
        self._persist_attempts = max(1, persist_attempts)
        self._retry_delay = retry_delay
        self._queue: asyncio.Queue[_PendingMutation] = asyncio.Queue()
        self._worker: Optional[asyncio.Task[None]] = None

    @classmethod
    def for_root(
        cls,
        root: Path,
        filename: str = DEFAULT_METADATA_FILENAME,
        **kwargs: Any,
    ) -> "MetadataStore":
        """Return a store whose index file lives directly under ``root``."""
        return cls(root / filename, **kwargs)

    @property
    def path(self) -> Path:
        """Return the path of the index file."""
        return self._path

    @property
    def root(self) -> Path:
        """Return the managed root that contains the index file."""
        return self._path.parent

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    async def read(self) -> MetadataIndex:
        """Return the persisted index.

        A missing or unparseable index file yields an empty mapping rather than
        an error.
        """
        return await asyncio.to_thread(self._load)

    async def update_one(self, filename: str, record: DocumentRecord | None) -> None:
        """Insert, replace, or (when ``record`` is None) delete a single entry.

        Raises:
            MetadataPersistError: If the index could not be written.
        """

        def apply(raw: RawIndex) -> tuple[None, bool]:
            if record is None:
                raw.pop(filename, None)
            else:
                raw[filename] = _dump(record)
            return None, True

        await self._submit(f"update {filename}", apply)

    async def update_bulk(self, updates: Mapping[str, DocumentRecord | None]) -> None:
        """Apply several inserts/replacements/deletions in one persisted write.

        Raises:
            MetadataPersistError: If the index could not be written.
        """
        changes = dict(updates)

        def apply(raw: RawIndex) -> tuple[None, bool]:
            for filename, record in changes.items():
                if record is None:
                    raw.pop(filename, None)
                else:
                    raw[filename] = _dump(record)
            return None, True

        await self._submit(f"bulk update of {len(changes)} entries", apply)

    async def replace_all(self, index: Mapping[str, DocumentRecord]) -> None:
        """Overwrite the entire index.

        Raises:
            MetadataPersistError: If the index could not be written.
        """
        replacement = {filename: _dump(record) for filename, record in index.items()}

        def apply(raw: RawIndex) -> tuple[None, bool]:
            raw.clear()
            raw.update(replacement)
            return None, True

        await self._submit(f"replace with {len(replacement)} entries", apply)

    async def discard(self, predicate: Callable[[DocumentRecord], bool]) -> list[str]:
        """Remove every record matching ``predicate`` in one serialized mutation.

        The index is only rewritten when at least one record was removed.
        Entries that do not validate as records are never offered to
        ``predicate`` and are kept.

        Returns:
            list[str]: Filenames of the removed records.

        Raises:
            MetadataPersistError: If the index could not be written.
        """

        def apply(raw: RawIndex) -> tuple[list[str], bool]:
            removed = [
                name for name, record in self._validate(raw).items() if predicate(record)
            ]
            for name in removed:
                del raw[name]
            return removed, bool(removed)

        return await self._submit("discard", apply)

    # ------------------------------------------------------------------ #
    # Serialization queue                                                #
    # ------------------------------------------------------------------ #

    async def _submit(self, label: str, apply: Mutation) -> Any:
        loop = asyncio.get_running_loop()
        pending = _PendingMutation(label=label, apply=apply, future=loop.create_future())
        self._queue.put_nowait(pending)
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain())
        return await pending.future

    async def _drain(self) -> None:
        # No await separates the emptiness check from the worker exiting, so a
        # mutation queued afterwards always sees a finished worker and starts one.
        while not self._queue.empty():
            pending = self._queue.get_nowait()
            try:
                result = await self._execute(pending)
            except Exception as exc:
                if not pending.future.done():
                    pending.future.set_exception(exc)
            else:
                if not pending.future.done():
                    pending.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _execute(self, pending: _PendingMutation) -> Any:
        raw = await asyncio.to_thread(self._load_raw)
        result, changed = pending.apply(raw)
        if changed:
            await self._persist(raw, pending.label)
        return result

    async def _persist(self, raw: RawIndex, label: str) -> None:
        payload = json.dumps(raw, indent=2, ensure_ascii=False)
        last_error: Exception | None = None
        for attempt in range(1, self._persist_attempts + 1):
            try:
                await asyncio.to_thread(self._write_atomic, payload)
            except OSError as exc:
                last_error = exc
                LOGGER.warning(
                    "Metadata write for %s failed (attempt %d/%d): %s",
                    label,
                    attempt,
                    self._persist_attempts,
                    exc,
                )
                if attempt < self._persist_attempts:
                    await asyncio.sleep(self._retry_delay)
            else:
                LOGGER.debug("Persisted metadata (%s, %d entries)", label, len(raw))
                return
        raise MetadataPersistError(
            f"Failed to write {self._path} after {self._persist_attempts} attempts: {last_error}"
        ) from last_error

    # ------------------------------------------------------------------ #
    # Disk I/O (runs in worker threads)                                  #
    # ------------------------------------------------------------------ #

    def _load(self) -> MetadataIndex:
        return self._validate(self._load_raw())

    def _load_raw(self) -> RawIndex:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable metadata index %s: %s", self._path, exc)
            return {}

        if not isinstance(raw, dict):
            LOGGER.warning("Ignoring metadata index %s: top level is not an object", self._path)
            return {}
        return raw

    @staticmethod
    def _validate(raw: RawIndex) -> MetadataIndex:
        index: MetadataIndex = {}
        for filename, data in raw.items():
            try:
                index[filename] = DocumentRecord.model_validate(data)
            except ValidationError as exc:
                LOGGER.warning("Skipping invalid metadata record %r: %s", filename, exc)
        return index

    def _write_atomic(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f"{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self._path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise


__all__ = [
    "DEFAULT_METADATA_FILENAME",
    "DocumentMetadata",
    "DocumentRecord",
    "MetadataIndex",
    "MetadataStore",
]
