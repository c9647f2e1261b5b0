"""Data models for document structure (pages, metadata, chapters)."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PageCountConfidence(str, Enum):
    """How a page count was established."""

    EXACT_DECLARED = "exact-declared"
    EXACT_COUNTED = "exact-counted"
    ESTIMATED_FROM_SIZE = "estimated-from-size"
    # Only assigned once the text-layer engine has loaded the document
    VERIFIED = "verified"


class StructuralPageCount(BaseModel):
    """Page count plus the confidence tier it was derived with."""

    count: int = Field(ge=1)
    confidence: PageCountConfidence


class CamelModel(BaseModel):
    """Model serialized with camelCase keys (by_alias=True)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractedPage(BaseModel):
    """Reconstructed text of a single page."""

    number: int  # 1-based
    text: str = ""


class DocumentMetadata(CamelModel):
    """Descriptive fields embedded in the document, when present."""

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    creator: str | None = None
    producer: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None


class Chapter(CamelModel):
    """Chapter detected in the text stream."""

    number: int
    title: str
    content: str = ""
    page_start: int | None = None
    page_end: int | None = None

    @property
    def word_count(self) -> int:
        return len(self.content.split())
