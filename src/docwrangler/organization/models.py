"""Organization candidates, plans, and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from docwrangler.state.models import DocumentMetadata, DocumentRecord


class Candidate(BaseModel):
    """A document eligible for organization.

    Attributes:
        filename: Basename of the document.
        path: Location of the document when it was scanned.
        relative_path: POSIX path of the document relative to the managed root.
        metadata: Recorded metadata, or metadata recovered from the filename.
        record: Existing index record, when the document has one.
    """

    filename: str
    path: Path
    relative_path: str
    metadata: DocumentMetadata
    record: Optional[DocumentRecord] = None

    def describe(self) -> dict[str, Any]:
        """Return the planner-facing description of this candidate."""
        description: dict[str, Any] = {
            "filename": self.filename,
            "currentPath": self.relative_path,
        }
        description.update(self.metadata.model_dump(mode="json", by_alias=True))
        return description


class Move(BaseModel):
    """Represents moving one document to its planned location.

    Attributes:
        filename: Basename of the document being moved.
        source: Location of the document before the move.
        destination: Planned location after the move.
        reasoning: Optional explanation supplied by the planner.
    """

    filename: str
    source: Path
    destination: Path
    reasoning: Optional[str] = None


class OrganizationPlan(BaseModel):
    """Validated moves for one organization run."""

    moves: List[Move] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


@dataclass(slots=True)
class AppliedMove:
    """A move that completed, with the destination actually used."""

    move: Move
    destination: Path
    conflict_applied: bool = False

    @property
    def renamed(self) -> bool:
        return self.destination.name != self.move.filename


@dataclass(slots=True)
class ExecutionReport:
    applied: list[AppliedMove] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class OrganizationResult:
    """Outcome of one organization run.

    Attributes:
        root: Managed root that was organized.
        candidates: Number of documents considered.
        plan: Validated plan, when planning succeeded.
        applied: Moves that completed.
        errors: Per-item failures encountered while executing the plan.
        failure: Failure that stopped the run before execution, if any.
    """

    root: Path
    candidates: int = 0
    plan: Optional[OrganizationPlan] = None
    applied: list[AppliedMove] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    failure: Optional[str] = None

    @property
    def moved(self) -> int:
        return len(self.applied)

    @property
    def ok(self) -> bool:
        return self.failure is None and not self.errors

    @property
    def error(self) -> Optional[str]:
        """Return a single message describing everything that went wrong."""
        if self.failure is not None:
            return self.failure
        if self.errors:
            return "Completed with errors: " + "; ".join(self.errors)
        return None


__all__ = [
    "Candidate",
    "Move",
    "OrganizationPlan",
    "AppliedMove",
    "ExecutionReport",
    "OrganizationResult",
]
