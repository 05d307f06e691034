"""Classifier and planner capabilities."""

from .engine import Classifier, DSPyClassifier, DSPyPlanner, Planner
from .models import (
    ClassifierResponse,
    PlannedMove,
    PlanResponse,
    decode_reply,
    normalize_metadata,
    split_addressees,
)

__all__ = [
    "Classifier",
    "Planner",
    "DSPyClassifier",
    "DSPyPlanner",
    "ClassifierResponse",
    "PlannedMove",
    "PlanResponse",
    "decode_reply",
    "normalize_metadata",
    "split_addressees",
]
