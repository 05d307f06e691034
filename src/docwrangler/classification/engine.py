"""Classifier and planner capabilities built on top of DSPy.

The pipelines depend only on the :class:`Classifier` and :class:`Planner`
protocols; the DSPy-backed implementations here are the default adapters
configured from :class:`~docwrangler.config.models.LLMSettings`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

from pydantic import BaseModel

try:  # pragma: no cover - optional dependency
    import dspy  # type: ignore
except ImportError:  # pragma: no cover - executed when DSPy absent
    dspy = None  # type: ignore[assignment]

from docwrangler.config.models import LLMSettings
from docwrangler.errors import LLMError

LOGGER = logging.getLogger(__name__)

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)

Reply = Union[str, Mapping[str, Any], Sequence[Any]]


class Classifier(Protocol):
    """Extract structured metadata from document text."""

    async def classify(self, text: str, schema: type[BaseModel]) -> Reply: ...


class Planner(Protocol):
    """Decide destination paths for a batch of documents."""

    async def plan(self, files: Sequence[Mapping[str, Any]], guidelines: str) -> Reply: ...


def build_language_model(settings: LLMSettings):
    """Return a DSPy language model configured from ``settings``.

    Raises:
        LLMError: If DSPy is not installed or the model cannot be configured.
    """
    if dspy is None:
        raise LLMError("DSPy is required for LLM-backed classification and planning.")

    model = settings.model
    if settings.provider and "/" not in model:
        model = f"{settings.provider}/{model}"

    lm_kwargs: dict[str, object] = {
        "model": model,
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
    }
    if settings.api_base_url:
        lm_kwargs["api_base"] = settings.api_base_url
    if settings.api_key is not None:
        lm_kwargs["api_key"] = settings.api_key

    try:
        return dspy.LM(**lm_kwargs)
    except Exception as exc:  # pragma: no cover - DSPy configuration errors
        raise LLMError(f"Unable to configure the language model {model!r}: {exc}") from exc


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence from a model reply."""
    match = _FENCE.match(text)
    return match.group(1) if match else text.strip()


class _DSPyCapability:
    """Shared plumbing: one language model, one predictor, calls run off-loop."""

    def __init__(self, settings: Optional[LLMSettings] = None) -> None:
        self._settings = settings or LLMSettings()
        self._lm = build_language_model(self._settings)
        self._program = self._build_program()

    def _build_program(self):
        raise NotImplementedError

    def _invoke(self, **inputs: str):
        with dspy.context(lm=self._lm):
            return self._program(**inputs)

    async def _predict(self, field: str, **inputs: str) -> str:
        try:
            prediction = await asyncio.to_thread(self._invoke, **inputs)
        except Exception as exc:
            LOGGER.debug("DSPy call failed: %s", exc)
            raise LLMError(f"Language model call failed: {exc}") from exc
        return strip_code_fence(str(getattr(prediction, field, "") or ""))


class DSPyClassifier(_DSPyCapability):
    """Extract document metadata with a DSPy predictor."""

    async def classify(self, text: str, schema: type[BaseModel]) -> str:
        output_schema = json.dumps(schema.model_json_schema(by_alias=True))
        return await self._predict("metadata_json", document_text=text, output_schema=output_schema)

    def _build_program(self):
        class DocumentMetadataSignature(dspy.Signature):  # type: ignore[misc]
            """Extract filing metadata from the text of a scanned document.

            date is yyyy-mm-dd or null; title is at most 8 words without commas and names
            the sender and subject when the document has no descriptive title; addressees
            are at most two first names separated by a space; tags are 3-5 descriptive
            tags; categoryHint is a folder such as financial, medical or insurance;
            docType is a specific type such as bank-statement or invoice.
            """

            document_text: str = dspy.InputField()
            output_schema: str = dspy.InputField(desc="JSON schema the reply must satisfy")
            metadata_json: str = dspy.OutputField(desc="a single JSON object, no prose")

        return dspy.Predict(DocumentMetadataSignature)


class DSPyPlanner(_DSPyCapability):
    """Plan category folders for a batch of documents with a DSPy predictor."""

    async def plan(self, files: Sequence[Mapping[str, Any]], guidelines: str) -> str:
        files_json = json.dumps(list(files), indent=2, default=str)
        return await self._predict("plan_json", files_json=files_json, guidelines=guidelines)

    def _build_program(self):
        class OrganizationPlanSignature(dspy.Signature):  # type: ignore[misc]
            """Organize documents into a logical folder structure.

            For every input file return {"filename", "currentPath", "newPath", "reason"}
            where filename is copied verbatim, currentPath is the given path, and newPath
            is "{category}/{optional-subcategory}/{filename}".
            """

            files_json: str = dspy.InputField(desc="JSON list of files with their metadata")
            guidelines: str = dspy.InputField()
            plan_json: str = dspy.OutputField(desc="a JSON array of moves, no prose")

        return dspy.Predict(OrganizationPlanSignature)


__all__ = [
    "Classifier",
    "Planner",
    "DSPyClassifier",
    "DSPyPlanner",
    "build_language_model",
    "strip_code_fence",
]
