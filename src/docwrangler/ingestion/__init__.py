"""Document ingestion: naming, results, and the per-document pipeline."""

from .models import IngestionResult, IngestionStage
from .naming import build_filename, move_without_overwrite, next_free_path, parse_filename
from .pipeline import IngestionPipeline, managed_root_for

__all__ = [
    "IngestionPipeline",
    "IngestionResult",
    "IngestionStage",
    "build_filename",
    "managed_root_for",
    "move_without_overwrite",
    "next_free_path",
    "parse_filename",
]
