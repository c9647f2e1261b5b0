"""Data models for extraction outcomes."""

from enum import Enum

from pydantic import BaseModel, Field

from pdf_chapters.errors import ErrorKind
from pdf_chapters.models.document import (
    CamelModel,
    Chapter,
    DocumentMetadata,
    ExtractedPage,
    StructuralPageCount,
)

PAGE_MARKER = "--- Page {number} ---"


class ResultTier(str, Enum):
    """Degradation level reached by an extraction."""

    FULL = "full"
    PAGE_COUNT_ONLY = "page_count_only"
    UNEXTRACTABLE = "unextractable"


class TextLayer(BaseModel):
    """Text recovered by the parsing engine."""

    pages: list[ExtractedPage] = Field(default_factory=list)
    metadata: DocumentMetadata | None = None
    page_count: int

    @property
    def full_text(self) -> str:
        """Page-marked text stream consumed by the segmenter."""
        parts = []
        for page in self.pages:
            parts.append(PAGE_MARKER.format(number=page.number))
            parts.append(page.text)
        return "\n".join(parts)


class Unavailable(BaseModel):
    """The text layer could not be produced."""

    reason: ErrorKind
    detail: str = ""


class ExtractionResult(BaseModel):
    """Outcome of a single extraction run."""

    chapters: list[Chapter] = Field(default_factory=list)
    page_count: StructuralPageCount | None = None
    metadata: DocumentMetadata | None = None
    full_text_length: int = 0
    tier: ResultTier
    warnings: list[str] = Field(default_factory=list)

    @property
    def requires_manual_entry(self) -> bool:
        return self.tier != ResultTier.FULL

    def to_response(self) -> "ExtractionResponse":
        """Build the caller-facing payload."""
        page_count = self.page_count.count if self.page_count else 0

        if self.tier == ResultTier.FULL:
            message = None
        elif self.tier == ResultTier.PAGE_COUNT_ONLY:
            message = (
                f"PDF processed. Found {page_count} pages. "
                "Please enter chapters manually."
            )
        else:
            message = (
                "Could not extract information from PDF. Please use manual entry."
            )

        return ExtractionResponse(
            success=self.tier != ResultTier.UNEXTRACTABLE,
            message=message,
            data=ResponseData(
                chapters=[c.model_copy() for c in self.chapters],
                total_chapters=len(self.chapters),
                page_count=page_count,
                metadata=self.metadata,
                full_text_length=self.full_text_length,
            ),
            requires_manual_entry=self.requires_manual_entry,
        )


class ResponseData(CamelModel):
    """Data section of the response payload."""

    chapters: list[Chapter] = Field(default_factory=list)
    total_chapters: int = 0
    page_count: int = 0
    metadata: DocumentMetadata | None = None
    full_text_length: int = 0


class ExtractionResponse(CamelModel):
    """Serializable response payload for the caller."""

    success: bool
    message: str | None = None
    data: ResponseData
    requires_manual_entry: bool

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
