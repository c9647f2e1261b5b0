"""Data models."""

from pdf_chapters.models.document import (
    Chapter,
    DocumentMetadata,
    ExtractedPage,
    PageCountConfidence,
    StructuralPageCount,
)
from pdf_chapters.models.extraction import (
    ExtractionResponse,
    ExtractionResult,
    ResponseData,
    ResultTier,
    TextLayer,
    Unavailable,
)

__all__ = [
    # Document models
    "PageCountConfidence",
    "StructuralPageCount",
    "ExtractedPage",
    "DocumentMetadata",
    "Chapter",
    # Extraction models
    "ResultTier",
    "TextLayer",
    "Unavailable",
    "ExtractionResult",
    "ResponseData",
    "ExtractionResponse",
]
