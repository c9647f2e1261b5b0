"""Chapter deduplication, ordering and page-range fix-up."""

from pdf_chapters.models.document import Chapter


def normalize(chapters: list[Chapter]) -> list[Chapter]:
    """
    Sort chapters by number and drop repeated numbers.

    The sort is stable, so among chapters sharing a number the one that came
    first in the input is kept. A later repeat is usually a false-positive
    heading in body text.
    """
    seen: set[int] = set()
    normalized = []

    for chapter in sorted(chapters, key=lambda c: c.number):
        if chapter.number in seen:
            continue
        seen.add(chapter.number)
        normalized.append(chapter.model_copy())

    return normalized


def fill_page_ranges(chapters: list[Chapter], last_page: int | None) -> list[Chapter]:
    """Derive missing page_end values from the next chapter's start page."""
    filled = []

    for i, chapter in enumerate(chapters):
        chapter = chapter.model_copy()
        if chapter.page_end is None and chapter.page_start is not None:
            if i + 1 < len(chapters) and chapters[i + 1].page_start is not None:
                # End at next section's start
                chapter.page_end = max(chapter.page_start, chapters[i + 1].page_start - 1)
            elif i + 1 == len(chapters) and last_page is not None:
                chapter.page_end = max(chapter.page_start, last_page)
        filled.append(chapter)

    return filled
