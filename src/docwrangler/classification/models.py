"""Schemas for classifier and planner replies, and their validating decode step."""

from __future__ import annotations

import datetime as dt
from typing import Any, List, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, RootModel, ValidationError
from pydantic.alias_generators import to_camel

from docwrangler.config.models import IngestionSettings
from docwrangler.errors import LLMError
from docwrangler.state.models import DocumentMetadata

_PLACEHOLDER_DATES = {"", "null", "none", "unknown", "n/a"}

ModelT = TypeVar("ModelT", bound=BaseModel)


class _StrictReply(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ClassifierResponse(_StrictReply):
    """Fields a classifier must return for a document.

    Every field may be null; normalization fills defaults. Unknown keys are
    rejected.
    """

    date: Optional[str] = None
    title: Optional[str] = None
    addressees: Union[str, List[str], None] = Field(
        default=None, validation_alias=AliasChoices("addressees", "addressee")
    )
    tags: Optional[List[str]] = None
    category_hint: Optional[str] = None
    doc_type: Optional[str] = None


class PlannedMove(_StrictReply):
    """One planner decision, with paths relative to the managed root."""

    filename: str
    current_path: Optional[str] = None
    new_path: str
    reason: Optional[str] = None


class PlanResponse(RootModel[List[PlannedMove]]):
    """Ordered list of planner decisions."""


def decode_reply(
    reply: Union[str, bytes, Mapping[str, Any], Sequence[Any]],
    model: type[ModelT],
    *,
    source: str,
) -> ModelT:
    """Validate a raw capability reply against ``model``, failing closed.

    Args:
        reply: JSON text or already-decoded structure returned by the capability.
        model: Schema the reply must satisfy.
        source: Capability name used in error messages.

    Returns:
        ModelT: The validated reply.

    Raises:
        LLMError: If the reply is not valid JSON or does not match the schema.
    """
    try:
        if isinstance(reply, (str, bytes)):
            return model.model_validate_json(reply)
        return model.model_validate(reply)
    except ValidationError as exc:
        raise LLMError(f"{source} returned output that does not match the schema: {exc}") from exc


def normalize_metadata(
    response: ClassifierResponse,
    settings: Optional[IngestionSettings] = None,
    *,
    today: Optional[dt.date] = None,
) -> DocumentMetadata:
    """Turn a validated classifier reply into document metadata.

    Missing or placeholder dates become ``today``; titles and addressees are
    length-capped; tags, category hint and document type receive defaults.

    Raises:
        LLMError: If the date is present but not an ISO calendar date.
    """
    settings = settings or IngestionSettings()
    today = today or dt.date.today()

    raw_date = (response.date or "").strip()
    if raw_date.lower() in _PLACEHOLDER_DATES:
        document_date = today
    else:
        try:
            document_date = dt.date.fromisoformat(raw_date)
        except ValueError as exc:
            raise LLMError(f"Classifier returned an invalid date: {raw_date!r}") from exc

    title = " ".join((response.title or "").split()) or "Untitled"

    return DocumentMetadata(
        date=document_date,
        title=title[: settings.title_max_length].rstrip(),
        addressees=split_addressees(response.addressees, settings.addressee_max_length),
        tags=[tag.strip() for tag in response.tags or [] if tag.strip()],
        category_hint=(response.category_hint or "").strip() or "uncategorized",
        doc_type=(response.doc_type or "").strip() or "unknown",
    )


def split_addressees(value: Union[str, Sequence[str], None], max_length: int = 50) -> list[str]:
    """Split addressees on whitespace, keep the first two, and drop repeats."""
    if value is None:
        return []
    joined = value if isinstance(value, str) else " ".join(value)
    names = [name[:max_length] for name in joined.split()][:2]
    return list(dict.fromkeys(names))


__all__ = [
    "ClassifierResponse",
    "PlannedMove",
    "PlanResponse",
    "decode_reply",
    "normalize_metadata",
    "split_addressees",
]
