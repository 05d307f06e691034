"""Executor for organization plans."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable

from docwrangler.errors import FileSystemError
from docwrangler.ingestion.naming import move_without_overwrite, next_free_path

from .models import AppliedMove, ExecutionReport, Move, OrganizationPlan

LOGGER = logging.getLogger(__name__)


class OperationExecutor:
    """Apply the moves of a plan independently of one another.

    A failed move is recorded on the report and does not stop the remaining
    moves. Destinations that are already occupied, on disk or by another
    indexed document, receive a ``" (n)"`` suffix.
    """

    async def apply(
        self,
        plan: OrganizationPlan,
        *,
        names_in_use: Iterable[str] = (),
    ) -> ExecutionReport:
        """Execute every move in ``plan``.

        Args:
            plan: Validated plan to execute.
            names_in_use: Filenames already keyed in the metadata index.

        Returns:
            ExecutionReport: Completed moves and per-item error messages.
        """
        report = ExecutionReport()
        names = set(names_in_use)
        claimed: set[Path] = set()

        for move in plan.moves:
            try:
                applied = await self._apply_move(move, names, claimed)
            except FileSystemError as exc:
                LOGGER.error("%s", exc)
                report.errors.append(str(exc))
                continue
            report.applied.append(applied)
            names.add(applied.destination.name)

        return report

    async def _apply_move(self, move: Move, names: set[str], claimed: set[Path]) -> AppliedMove:
        source = move.source
        if not source.exists():
            raise FileSystemError(f"Failed to move {move.filename}: {source} no longer exists")
        if move.destination == source:
            return AppliedMove(move=move, destination=source)

        def taken(option: Path) -> bool:
            if option == source:
                return False
            if option in claimed or option.exists():
                return True
            return option.name != move.filename and option.name in names

        while True:
            destination = next_free_path(move.destination, taken)
            claimed.add(destination)
            try:
                await asyncio.to_thread(move_without_overwrite, source, destination)
            except FileExistsError:
                LOGGER.debug("%s appeared before the move; choosing another name", destination)
                continue
            except OSError as exc:
                raise FileSystemError(f"Failed to move {move.filename}: {exc}") from exc
            break

        LOGGER.info("Moved %s -> %s", source, destination)
        return AppliedMove(
            move=move,
            destination=destination,
            conflict_applied=destination != move.destination,
        )


__all__ = ["OperationExecutor"]
