"""Error taxonomy for the extraction pipeline."""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories. All but page and persistence failures downgrade the tier."""

    FETCH_TIMEOUT = "fetch_timeout"
    FETCH_FAILED = "fetch_failed"
    ENGINE_MISSING = "engine_missing"
    LOAD_FAILED = "load_failed"
    LOAD_TIMEOUT = "load_timeout"
    PAGE_EXTRACTION_FAILED = "page_extraction_failed"
    PERSISTENCE_FAILED = "persistence_failed"


class ExtractionError(Exception):
    """Base class for pipeline errors."""

    kind: ErrorKind = ErrorKind.LOAD_FAILED


class FetchTimeout(ExtractionError):
    """Fetching document bytes exceeded its time budget."""

    kind = ErrorKind.FETCH_TIMEOUT


class FetchFailed(ExtractionError):
    """Non-2xx response, network error or missing storage object."""

    kind = ErrorKind.FETCH_FAILED


class LoadFailed(ExtractionError):
    """The engine could not parse the bytes as a PDF."""

    kind = ErrorKind.LOAD_FAILED


class LoadTimeout(ExtractionError):
    kind = ErrorKind.LOAD_TIMEOUT


class PageExtractionFailed(ExtractionError):
    """Text recovery failed for one page."""

    kind = ErrorKind.PAGE_EXTRACTION_FAILED

    def __init__(self, page_number: int, cause: Exception):
        super().__init__(f"page {page_number}: {cause}")
        self.page_number = page_number


class PersistenceFailed(ExtractionError):
    """Writing results back to the document store failed."""

    kind = ErrorKind.PERSISTENCE_FAILED
