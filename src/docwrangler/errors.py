"""Error taxonomy shared by the ingestion and organization pipelines."""


class WranglerError(Exception):
    """Base exception for pipeline and store failures."""


class ExtractionError(WranglerError):
    """Raised when a document's text cannot be read or parsed."""


class CapabilityUnavailableError(ExtractionError):
    """Raised when the text-recognition capability is absent on this host."""


class LLMError(WranglerError):
    """Raised when a classifier or planner fails or violates its output contract."""


class FileSystemError(WranglerError):
    """Raised when a source is missing or a move cannot be performed."""


class MetadataPersistError(WranglerError):
    """Raised when the metadata index could not be written after all retries."""


__all__ = [
    "WranglerError",
    "ExtractionError",
    "CapabilityUnavailableError",
    "LLMError",
    "FileSystemError",
    "MetadataPersistError",
]
