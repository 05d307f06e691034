"""Turn planner replies into validated, root-confined moves."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence

from docwrangler.classification import Planner, PlannedMove, PlanResponse, decode_reply
from docwrangler.config.models import OrganizationSettings
from docwrangler.errors import LLMError

from .models import Candidate, Move, OrganizationPlan

LOGGER = logging.getLogger(__name__)


def _relative_parts(value: str, *, label: str) -> tuple[str, ...]:
    text = value.strip().replace("\\", "/")
    pure = PurePosixPath(text)
    parts = tuple(part for part in pure.parts if part != ".")
    if not parts or pure.is_absolute() or ".." in parts:
        raise LLMError(f"Planner returned an invalid {label}: {value!r}")
    return parts


class OrganizationPlanner:
    """Ask a planner capability for destinations and validate its answer.

    The reply must be a list of ``{filename, currentPath?, newPath, reason?}``
    objects. Every filename must name one of the submitted candidates and be
    the final component of ``newPath``; paths must stay inside the managed
    root. Any violation rejects the whole plan.
    """

    def __init__(self, capability: Planner, settings: Optional[OrganizationSettings] = None):
        self.capability = capability
        self.settings = settings or OrganizationSettings()

    async def build_plan(self, candidates: Sequence[Candidate], root: Path) -> OrganizationPlan:
        """Request and validate a plan for ``candidates``.

        Args:
            candidates: Documents to organize.
            root: Managed root that all destinations must stay inside.

        Returns:
            OrganizationPlan: Moves in the order the planner returned them.

        Raises:
            LLMError: If the planner fails or its reply violates the contract.
        """
        entries = [candidate.describe() for candidate in candidates]
        try:
            reply = await self.capability.plan(entries, self.settings.guidelines)
        except LLMError:
            raise
        except Exception as exc:
            raise LLMError(f"Planner failed: {exc}") from exc

        response = decode_reply(reply, PlanResponse, source="Planner")
        return self.resolve(response.root, candidates, root)

    def resolve(
        self,
        planned: Sequence[PlannedMove],
        candidates: Sequence[Candidate],
        root: Path,
    ) -> OrganizationPlan:
        """Validate planner decisions against the candidates and the root."""
        by_filename: dict[str, list[Candidate]] = {}
        for candidate in candidates:
            by_filename.setdefault(candidate.filename, []).append(candidate)

        plan = OrganizationPlan()
        seen: set[Path] = set()
        for item in planned:
            candidate = self._match(item, by_filename)
            if candidate.path in seen:
                raise LLMError(f"Planner returned more than one move for {item.filename!r}")
            seen.add(candidate.path)
            plan.moves.append(
                Move(
                    filename=candidate.filename,
                    source=candidate.path,
                    destination=root.joinpath(*self._destination(item)),
                    reasoning=item.reason,
                )
            )

        unplanned = len(candidates) - len(seen)
        if unplanned:
            plan.notes.append(f"{unplanned} document(s) were left in place by the planner.")
            LOGGER.info("Planner left %d of %d documents in place", unplanned, len(candidates))
        return plan

    def _match(self, item: PlannedMove, by_filename: dict[str, list[Candidate]]) -> Candidate:
        matches = by_filename.get(item.filename)
        if not matches:
            raise LLMError(f"Planner returned an unknown filename: {item.filename!r}")

        if item.current_path is None:
            if len(matches) > 1:
                raise LLMError(f"Planner did not say which {item.filename!r} to move")
            return matches[0]

        current = "/".join(_relative_parts(item.current_path, label="currentPath"))
        if PurePosixPath(current).name != item.filename:
            raise LLMError(
                f"Planner currentPath {item.current_path!r} does not name {item.filename!r}"
            )
        for candidate in matches:
            if candidate.relative_path == current:
                return candidate
        if len(matches) == 1:
            return matches[0]
        raise LLMError(f"Planner returned an unknown currentPath: {item.current_path!r}")

    def _destination(self, item: PlannedMove) -> tuple[str, ...]:
        parts = _relative_parts(item.new_path, label="newPath")
        if parts[-1] != item.filename:
            raise LLMError(
                f"Planner newPath {item.new_path!r} does not end with {item.filename!r}"
            )
        directories = parts[:-1]
        if self.settings.lowercase_paths:
            directories = tuple(part.lower() for part in directories)
        return (*directories, item.filename)


__all__ = ["OrganizationPlanner"]
