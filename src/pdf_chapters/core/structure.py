"""Page counting from raw PDF bytes, without a document model."""

import logging
import math
import re

from pdf_chapters.config import DEFAULT_BYTES_PER_PAGE
from pdf_chapters.models.document import PageCountConfidence, StructuralPageCount

log = logging.getLogger(__name__)

# /Count N on a page tree node; the root /Pages node is usually serialized last.
# Digit runs too long to be a page count are not declarations.
COUNT_DECLARATION = re.compile(r"/Count\s+(\d{1,9})(?!\d)")
# /Type /Page but not /Type /Pages
PAGE_OBJECT = re.compile(r"/Type\s*/Page(?!s)")


def declared_page_count(text: str) -> int | None:
    """Return the last /Count declaration, if it is positive."""
    matches = COUNT_DECLARATION.findall(text)
    if not matches:
        return None
    count = int(matches[-1])
    return count if count > 0 else None


def counted_page_objects(text: str) -> int | None:
    """Count page objects in the serialized object graph."""
    count = len(PAGE_OBJECT.findall(text))
    return count or None


def estimate_from_size(byte_length: int, bytes_per_page: int = DEFAULT_BYTES_PER_PAGE) -> int:
    return max(1, math.ceil(byte_length / bytes_per_page))


def inspect(data: bytes, bytes_per_page: int = DEFAULT_BYTES_PER_PAGE) -> StructuralPageCount:
    """
    Best-effort page count from structural markers.

    Tries, in order: the page tree's /Count declaration, the number of
    /Type /Page objects, and finally a size-based estimate. Never fails.
    """
    # latin-1 maps every byte to a code point, so decoding cannot fail
    text = data.decode("latin-1")

    count = declared_page_count(text)
    if count is not None:
        log.debug(f"Page count from /Count declaration: {count}")
        return StructuralPageCount(
            count=count, confidence=PageCountConfidence.EXACT_DECLARED
        )

    count = counted_page_objects(text)
    if count is not None:
        log.debug(f"Page count from /Type /Page objects: {count}")
        return StructuralPageCount(
            count=count, confidence=PageCountConfidence.EXACT_COUNTED
        )

    count = estimate_from_size(len(data), bytes_per_page)
    log.debug(f"Page count estimated from size ({len(data)} bytes): {count}")
    return StructuralPageCount(
        count=count, confidence=PageCountConfidence.ESTIMATED_FROM_SIZE
    )
