"""
Error kinds raised by the cvrank pipeline.

Every error carries a stable ``kind`` string, used when a batch records
a per-candidate failure, and a ``retryable`` flag telling the caller
whether the same input can succeed on a later attempt.
"""

from __future__ import annotations


class CVRankError(Exception):
    """Base class for all cvrank errors."""

    kind = "error"
    retryable = False


class UnsupportedFormatError(CVRankError):
    """The document content type is not PDF or Word."""

    kind = "unsupported_format"

    def __init__(self, content_type: str) -> None:
        super().__init__(f"Unsupported file type: {content_type!r}")
        self.content_type = content_type


class ExtractionError(CVRankError):
    """The document decoder could not read the file (corrupt, encrypted...)."""

    kind = "extraction_failed"


class ModelLoadError(CVRankError):
    """The embedding model failed to initialise; a later call may succeed."""

    kind = "model_load_failed"
    retryable = True


class DimensionMismatchError(CVRankError):
    """Two embedding vectors of different length were compared."""

    kind = "dimension_mismatch"

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Embeddings must have the same length (got {left} and {right})")
        self.left = left
        self.right = right


class BatchCancelledError(CVRankError):
    """A batch ranking was stopped through its cancel event."""

    kind = "cancelled"
