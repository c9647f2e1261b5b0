"""Extraction settings."""

from dataclasses import dataclass

# Rough size of a text-dominant page; image-heavy documents get undercounted
DEFAULT_BYTES_PER_PAGE = 50_000


@dataclass
class ExtractionSettings:
    """Tunables for a single extraction run."""

    fetch_timeout: float = 30.0
    fallback_timeout: float = 10.0  # page-count recovery only
    load_timeout: float = 30.0
    bytes_per_page: int = DEFAULT_BYTES_PER_PAGE
    line_tolerance: float = 5.0
    max_pages: int | None = None  # None = walk every page
    toc_fallback: bool = False
