"""Persisted document records and the metadata index."""

from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Base model serialized with camelCase keys; unknown keys survive a rewrite."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class DocumentMetadata(_CamelModel):
    """Metadata extracted from a document's content.

    Attributes:
        date: Document date.
        title: Short descriptive title.
        addressees: Ordered, unique addressee names (at most two).
        tags: Descriptive tags.
        category_hint: Suggested category folder.
        doc_type: Specific document type such as ``invoice``.
    """

    date: dt.date
    title: str
    addressees: List[str] = Field(default_factory=list, max_length=2)
    tags: List[str] = Field(default_factory=list)
    category_hint: str = "uncategorized"
    doc_type: str = "unknown"


class DocumentRecord(_CamelModel):
    """Index entry for one managed document, keyed by its filename."""

    filename: str
    original_path: str
    current_path: str
    processed_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    organized_at: Optional[dt.datetime] = None
    metadata: DocumentMetadata


MetadataIndex = Dict[str, DocumentRecord]


__all__ = ["DocumentMetadata", "DocumentRecord", "MetadataIndex"]
