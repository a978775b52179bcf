"""Error taxonomy for the ingestion pipeline stages.

Vector store errors (``ValidationError``, ``StoreUnavailableError``) live
in ``libs.vector_store.base``; this module covers the stages before the
store and the ``IngestionError`` wrapper the orchestrator reports.
"""

from typing import Optional

from libs.vector_store.base import StoreUnavailableError, ValidationError


class PipelineError(Exception):
    """Base exception for stage failures the orchestrator reports."""
    pass


class FetchError(PipelineError):
    """The image could not be downloaded (transport error, timeout, non-2xx)."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class DecodeError(PipelineError):
    """The downloaded bytes are not a decodable raster image."""
    pass


class PreprocessError(PipelineError):
    """The decoded image cannot be turned into a model input tensor."""
    pass


class ExtractionError(PipelineError):
    """The extractor received a tensor that violates its input contract."""
    pass


STAGE_ERRORS = (PipelineError, ValidationError, StoreUnavailableError)


def error_category(error: Exception) -> str:
    """Map an error to the coarse category reported to callers."""
    if isinstance(error, FetchError):
        return "fetch"
    if isinstance(error, DecodeError):
        return "decode"
    if isinstance(error, PreprocessError):
        return "preprocess"
    if isinstance(error, ExtractionError):
        return "extraction"
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, StoreUnavailableError):
        return "store"
    return "internal"


class IngestionError(Exception):
    """Terminal failure of one ingestion request.

    Wraps the first stage error with the name of the stage that raised it.
    """

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        self.category = error_category(cause)
        super().__init__(f"{stage} stage failed: {cause}")

    @property
    def error_type(self) -> str:
        return type(self.cause).__name__
