"""Organization of managed documents into category folders."""

from .executor import OperationExecutor
from .models import (
    AppliedMove,
    Candidate,
    ExecutionReport,
    Move,
    OrganizationPlan,
    OrganizationResult,
)
from .pipeline import OrganizationPipeline
from .planner import OrganizationPlanner
from .scanners import InboxScan, ScanStrategy, TreeScan, collect_candidates, synthesize_metadata

__all__ = [
    "AppliedMove",
    "Candidate",
    "ExecutionReport",
    "InboxScan",
    "Move",
    "OperationExecutor",
    "OrganizationPipeline",
    "OrganizationPlan",
    "OrganizationPlanner",
    "OrganizationResult",
    "ScanStrategy",
    "TreeScan",
    "collect_candidates",
    "synthesize_metadata",
]
