"""Typed failures raised by the ingestion and retrieval pipeline.

Every stage surfaces one of these to its caller instead of recovering
silently. None of them implies partial output: a file either ingests
completely or keeps its previous chunk set.
"""


class IngestionError(Exception):
    """Base class for pipeline failures."""

    code = "ingestion_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFormatError(IngestionError):
    """The declared file type is not one the extractor handles."""

    code = "unsupported_format"


class CorruptFileError(IngestionError):
    """The file claims a supported type but cannot be fully parsed."""

    code = "corrupt_file"


class EmbeddingProviderError(IngestionError):
    """The embedding model failed or returned an unusable response.

    ``retryable`` is True for remote failures (timeouts, rate limits,
    transient API errors) and False for local model failures.
    """

    code = "embedding_provider_error"

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class StorageWriteError(IngestionError):
    """Persisting a file's chunk set failed; the write was rolled back."""

    code = "storage_write_error"
