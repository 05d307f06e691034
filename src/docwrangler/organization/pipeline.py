"""Batch organization: scan, plan, execute, record."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Iterable, Optional

from docwrangler.classification import Planner
from docwrangler.config.models import IngestionSettings, OrganizationSettings, StoreSettings
from docwrangler.errors import FileSystemError, LLMError, MetadataPersistError, WranglerError
from docwrangler.maintenance import cleanup_empty_directories
from docwrangler.state import DocumentRecord, MetadataIndex, MetadataStore

from .executor import OperationExecutor
from .models import AppliedMove, Candidate, OrganizationPlan, OrganizationResult
from .planner import OrganizationPlanner
from .scanners import InboxScan, ScanStrategy, TreeScan, collect_candidates

LOGGER = logging.getLogger(__name__)


class OrganizationPipeline:
    """Organize the documents of one managed root into category folders.

    A run scans for candidates, asks the planner for destinations, executes the
    validated moves, and records the new locations in a single bulk update.
    The scan strategy decides the scope: :class:`InboxScan` organizes newly
    ingested documents, :class:`TreeScan` reorganizes everything already filed.
    """

    def __init__(
        self,
        store: MetadataStore,
        planner: Optional[Planner],
        scan: ScanStrategy,
        *,
        settings: Optional[OrganizationSettings] = None,
        ingestion: Optional[IngestionSettings] = None,
        executor: Optional[OperationExecutor] = None,
    ) -> None:
        self.store = store
        self.settings = settings or OrganizationSettings()
        self.ingestion = ingestion or IngestionSettings()
        self.planner = (
            OrganizationPlanner(planner, self.settings) if planner is not None else None
        )
        self.scanner = scan
        self.executor = executor or OperationExecutor()

    @classmethod
    def create(
        cls,
        store: MetadataStore,
        planner: Optional[Planner],
        *,
        reorganize: bool = False,
        settings: Optional[OrganizationSettings] = None,
        ingestion: Optional[IngestionSettings] = None,
        store_settings: Optional[StoreSettings] = None,
    ) -> "OrganizationPipeline":
        """Build a pipeline over the inbox, or over the whole tree when ``reorganize``."""
        ingestion = ingestion or IngestionSettings()
        scan: ScanStrategy
        if reorganize:
            scan = TreeScan(
                inbox_dirname=ingestion.inbox_dirname,
                metadata_filename=(store_settings or StoreSettings()).metadata_filename,
            )
        else:
            scan = InboxScan(inbox_dirname=ingestion.inbox_dirname)
        return cls(store, planner, scan, settings=settings, ingestion=ingestion)

    async def run(self) -> OrganizationResult:
        """Organize the managed root; failures are reported on the result."""
        root = self.store.root
        result = OrganizationResult(root=root)
        try:
            index = await self.store.read()
            candidates = await self.scan(index)
            result.candidates = len(candidates)
            if not candidates:
                LOGGER.info("Nothing to organize under %s", root)
                return result
            plan = await self.plan(candidates)
        except WranglerError as exc:
            LOGGER.error("Organization of %s failed: %s", root, exc)
            result.failure = str(exc)
            return result

        result.plan = plan
        await self.execute(plan, candidates, index, result)
        return result

    async def scan(self, index: MetadataIndex) -> list[Candidate]:
        """Return the documents in scope paired with their metadata.

        Raises:
            FileSystemError: If the managed root cannot be listed.
        """
        root = self.store.root

        def collect() -> list[Candidate]:
            return collect_candidates(
                self.scanner.scan(root),
                index,
                root,
                include_unmatched=self.settings.include_unmatched,
            )

        try:
            return await asyncio.to_thread(collect)
        except OSError as exc:
            raise FileSystemError(f"Unable to scan {root}: {exc}") from exc

    async def plan(self, candidates: list[Candidate]) -> OrganizationPlan:
        """Return a validated plan for ``candidates``.

        Raises:
            LLMError: If no planner is configured or the planner's reply is rejected.
        """
        if self.planner is None:
            raise LLMError("No planner is configured.")
        return await self.planner.build_plan(candidates, self.store.root)

    async def execute(
        self,
        plan: OrganizationPlan,
        candidates: list[Candidate],
        index: MetadataIndex,
        result: OrganizationResult,
    ) -> None:
        """Apply ``plan``, record the new locations, and tidy empty folders."""
        report = await self.executor.apply(plan, names_in_use=index)
        result.applied.extend(report.applied)
        result.errors.extend(report.errors)

        if report.applied:
            try:
                await self._record(report.applied, candidates, index)
            except MetadataPersistError as exc:
                LOGGER.error("%s", exc)
                result.errors.append(str(exc))

        if report.applied and self.settings.cleanup_after_execute:
            await self._cleanup()

        LOGGER.info(
            "Organized %s: %d moved, %d error(s)", self.store.root, result.moved, len(result.errors)
        )

    async def _record(
        self,
        applied: Iterable[AppliedMove],
        candidates: list[Candidate],
        index: MetadataIndex,
    ) -> None:
        by_source = {candidate.path: candidate for candidate in candidates}
        now = dt.datetime.now(dt.timezone.utc)
        updates: dict[str, DocumentRecord | None] = {}

        for item in applied:
            candidate = by_source[item.move.source]
            base = index.get(candidate.filename) or candidate.record
            if base is None:
                base = DocumentRecord(
                    filename=candidate.filename,
                    original_path=str(candidate.path),
                    current_path=str(candidate.path),
                    processed_at=now,
                    metadata=candidate.metadata,
                )
            new_name = item.destination.name
            if item.renamed:
                updates.setdefault(candidate.filename, None)
            updates[new_name] = base.model_copy(
                update={
                    "filename": new_name,
                    "current_path": str(item.destination),
                    "organized_at": now,
                }
            )

        await self.store.update_bulk(updates)

    async def _cleanup(self) -> None:
        try:
            await asyncio.to_thread(
                cleanup_empty_directories,
                self.store.root,
                inbox_dirname=self.ingestion.inbox_dirname,
                metadata_filename=self.store.path.name,
            )
        except OSError as exc:
            LOGGER.warning("Empty directory cleanup under %s failed: %s", self.store.root, exc)


__all__ = ["OrganizationPipeline"]
