"""Keyword lookup over extracted chapters."""

from pdf_chapters.models.document import Chapter


def find_relevant_chapters(chapters: list[Chapter], keywords: list[str]) -> list[Chapter]:
    """Return chapters whose title or content mentions any keyword (case-insensitive)."""
    needles = [k.lower() for k in keywords if k.strip()]
    if not needles:
        return []

    relevant = []
    for chapter in chapters:
        haystack = f"{chapter.title} {chapter.content}".lower()
        if any(needle in haystack for needle in needles):
            relevant.append(chapter)
    return relevant
