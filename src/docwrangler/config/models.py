"""Configuration models describing docwrangler settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GUIDELINES = """\
1. Create a shallow folder structure (max 2 levels deep).
2. Prefer 5-15 main categories.
3. Use clear, intuitive folder names that an average person would understand.
4. Consider the categoryHint, tags, and document type when organizing.
5. Group related documents together.
6. Common categories might include: financial, medical, insurance, property, services,
   receipts, legal, personal, work.
7. If unsure, use the categoryHint provided.
8. Keep every filename exactly as given; newPath is "{category}/{optional-subcategory}/{filename}".
"""


class WranglerBaseModel(BaseModel):
    """Shared configuration for docwrangler settings models."""

    model_config = ConfigDict(extra="forbid")


class LLMSettings(WranglerBaseModel):
    """LLM configuration options.

    Attributes:
        provider: Identifier for the language-model provider.
        model: Model name to target when issuing requests.
        api_base_url: Optional base URL for self-hosted or proxied endpoints.
        api_key: Optional credential for hosted providers.
        temperature: Sampling temperature for generative calls.
        max_tokens: Maximum number of tokens in responses.
    """

    provider: str = "openai"
    model: str = "gpt-4.1-nano"
    api_base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: float = 0.0
    max_tokens: int = 4_000


class ExtractionSettings(WranglerBaseModel):
    """Options governing text acquisition.

    Attributes:
        min_text_length: Below this many characters the primary text is insufficient.
        multi_page_min_length: Minimum text length expected from multi-page documents.
        render_scale: Zoom factor applied when rasterising pages for recognition.
        ocr_language: Tesseract language code used for recognition.
        classifier_char_limit: Number of leading characters sent to the classifier.
    """

    min_text_length: int = 20
    multi_page_min_length: int = 100
    render_scale: float = 1.0
    ocr_language: str = "eng"
    classifier_char_limit: int = 12_000


class IngestionSettings(WranglerBaseModel):
    """Options governing how ingested documents are named and placed.

    Attributes:
        managed_dirname: Directory created beside watched files to hold managed documents.
        inbox_dirname: Name of the inbox directory inside the managed root.
        lowercase_filenames: Whether generated filenames are lowercased.
        title_max_length: Maximum number of title characters kept.
        addressee_max_length: Maximum number of characters kept per addressee.
    """

    managed_dirname: str = "docwrangler"
    inbox_dirname: str = "inbox"
    lowercase_filenames: bool = True
    title_max_length: int = 100
    addressee_max_length: int = 50


class OrganizationSettings(WranglerBaseModel):
    """Settings that govern batch organization.

    Attributes:
        guidelines: Categorisation guideline text handed to the planner.
        lowercase_paths: Whether planned destination folders are lowercased.
        include_unmatched: Plan files whose names do not follow the naming pattern.
        cleanup_after_execute: Remove empty directories after moves complete.
    """

    guidelines: str = DEFAULT_GUIDELINES
    lowercase_paths: bool = True
    include_unmatched: bool = False
    cleanup_after_execute: bool = True


class StoreSettings(WranglerBaseModel):
    """Metadata store persistence options.

    Attributes:
        metadata_filename: Name of the index file inside the managed root.
        persist_attempts: Number of write attempts before giving up.
        persist_retry_delay_seconds: Fixed delay between write attempts.
    """

    metadata_filename: str = ".metadata.json"
    persist_attempts: int = Field(default=3, ge=1)
    persist_retry_delay_seconds: float = Field(default=0.1, ge=0)


class LoggingSettings(WranglerBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; rotation applies when set.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 5


class WranglerConfig(WranglerBaseModel):
    """Top-level configuration struct for docwrangler."""

    llm: LLMSettings = Field(default_factory=LLMSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    organization: OrganizationSettings = Field(default_factory=OrganizationSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "DEFAULT_GUIDELINES",
    "WranglerBaseModel",
    "LLMSettings",
    "ExtractionSettings",
    "IngestionSettings",
    "OrganizationSettings",
    "StoreSettings",
    "LoggingSettings",
    "WranglerConfig",
]
