"""Split a page-marked text stream into chapters by heading patterns."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from pdf_chapters.models.document import Chapter

log = logging.getLogger(__name__)

# Bounded so every captured number converts with int()
NUMBER = r"\d{1,9}"

PAGE_MARKER_LINE = re.compile(rf"^---\s*Page\s+({NUMBER})\s*---$")

# Well-formed numerals I..MMMCMXCIX; the lookahead rejects the empty match
ROMAN = r"(?=[MDCLXVI])M{0,3}(?:CM|CD|D?C{0,3})(?:XC|XL|L?X{0,3})(?:IX|IV|V?I{0,3})"
ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}

# Separator between a heading number and its title: "1: Intro", "1. Intro", "1 - Intro", "1 Intro"
SEP = r"(?:\s*[:.\-–—]\s*|\s+)"


def roman_to_int(numeral: str) -> int:
    """Convert a Roman numeral using subtractive notation."""
    result = 0
    prev = 0
    for char in reversed(numeral.upper()):
        curr = ROMAN_VALUES[char]
        if curr < prev:
            result -= curr
        else:
            result += curr
            prev = curr
    return result


# =============================================================================
# Heading Patterns
# =============================================================================


class Numeral(str, Enum):
    ARABIC = "arabic"
    ROMAN = "roman"


@dataclass(frozen=True)
class HeadingPattern:
    """A rule recognizing a line as the start of a chapter."""

    kind: str
    regex: re.Pattern
    numeral: Numeral = Numeral.ARABIC

    def match(self, line: str) -> tuple[int, str | None] | None:
        """Return (number, title) when the line is a heading of this kind."""
        m = self.regex.match(line)
        if not m:
            return None

        raw = m.group("number")
        number = roman_to_int(raw) if self.numeral is Numeral.ROMAN else int(raw)
        title = (m.groupdict().get("title") or "").strip()
        return number, title or None


def _keyword(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


# Most specific first; the first pattern that matches a line wins
HEADING_PATTERNS: tuple[HeadingPattern, ...] = (
    HeadingPattern(
        "chapter_titled",
        _keyword(rf"^chapter\s+(?P<number>{NUMBER}){SEP}(?P<title>\S.*)$"),
    ),
    HeadingPattern(
        "chapter_number", _keyword(rf"^chapter\s+(?P<number>{NUMBER})\s*[:.]?$")
    ),
    HeadingPattern(
        "part_titled",
        _keyword(rf"^part\s+(?P<number>{NUMBER}){SEP}(?P<title>\S.*)$"),
    ),
    HeadingPattern(
        "section_titled",
        _keyword(rf"^section\s+(?P<number>{NUMBER}){SEP}(?P<title>\S.*)$"),
    ),
    HeadingPattern(
        "chapter_roman",
        _keyword(rf"^chapter\s+(?P<number>{ROMAN})(?:{SEP}(?P<title>\S.*?))?\s*[:.]?$"),
        Numeral.ROMAN,
    ),
    HeadingPattern(
        "part_roman",
        _keyword(rf"^part\s+(?P<number>{ROMAN})(?:{SEP}(?P<title>\S.*?))?\s*[:.]?$"),
        Numeral.ROMAN,
    ),
    # Bare numerals are case-sensitive so "i. e." style text stays body text.
    # Lone L, C, D or M read as name initials ("C. Smith"), not headings.
    HeadingPattern(
        "roman",
        re.compile(rf"^(?![LCDM]\.)(?P<number>{ROMAN})\.\s+(?P<title>[A-Z].*)$"),
        Numeral.ROMAN,
    ),
    HeadingPattern(
        "numbered", re.compile(rf"^(?P<number>{NUMBER})[.:]\s+(?P<title>\S.*)$")
    ),
    HeadingPattern(
        "numbered_title", re.compile(rf"^(?P<number>{NUMBER})\s+(?P<title>[A-Z].*)$")
    ),
)


def match_heading(
    line: str, patterns: tuple[HeadingPattern, ...] = HEADING_PATTERNS
) -> tuple[HeadingPattern, int, str | None] | None:
    """Try each pattern in priority order; the first match wins."""
    for pattern in patterns:
        parsed = pattern.match(line)
        if parsed is not None:
            number, title = parsed
            return pattern, number, title
    return None


# =============================================================================
# Segmentation
# =============================================================================


@dataclass
class _OpenChapter:
    number: int
    title: str
    page_start: int | None
    lines: list[str] = field(default_factory=list)

    def close(self, page_end: int | None) -> Chapter:
        if page_end is not None and self.page_start is not None:
            page_end = max(page_end, self.page_start)
        return Chapter(
            number=self.number,
            title=self.title,
            content="\n".join(self.lines),
            page_start=self.page_start,
            page_end=page_end,
        )


def segment(text: str, last_page: int | None = None) -> list[Chapter]:
    """
    Scan text line by line, opening a chapter at every heading match.

    Page marker lines only move the current page. Lines before the first
    heading are dropped. The final chapter ends at ``last_page`` when given,
    otherwise at the last page marker seen.
    """
    chapters: list[Chapter] = []
    current: _OpenChapter | None = None
    page: int | None = None

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue

        marker = PAGE_MARKER_LINE.match(line)
        if marker:
            page = int(marker.group(1))
            continue

        heading = match_heading(line)
        if heading is None:
            if current is not None:
                current.lines.append(raw)
            continue

        pattern, number, title = heading
        if current is not None:
            chapters.append(current.close(page - 1 if page is not None else None))

        log.debug(f"Heading ({pattern.kind}) on page {page}: {line!r}")
        current = _OpenChapter(
            number=number,
            title=title or f"Chapter {number}",
            page_start=page,
        )

    if current is not None:
        chapters.append(current.close(last_page if last_page is not None else page))

    return chapters


# =============================================================================
# Table of Contents Fallback
# =============================================================================

TOC_HEADING = re.compile(r"^(?:table\s+of\s+contents|contents)$", re.IGNORECASE)

# Optional trailing page number, with or without dot leaders
_TOC_PAGE = rf"(?:(?:\s*\.{{2,}}\s*|\s+)(?P<page>{NUMBER}))?$"
TOC_ENTRY_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(
        rf"^(?:chapter|ch\.?)\s*(?P<number>{NUMBER})[:.\s]+(?P<title>.+?){_TOC_PAGE}",
        re.IGNORECASE,
    ),
    re.compile(rf"^(?P<number>{NUMBER})[:.\s]+(?P<title>.+?){_TOC_PAGE}"),
)


def _parse_toc_entry(line: str) -> Chapter | None:
    for pattern in TOC_ENTRY_PATTERNS:
        m = pattern.match(line)
        if not m:
            continue
        number = int(m.group("number"))
        title = m.group("title").strip(" .")
        if number > 0 and title:
            page = m.group("page")
            return Chapter(
                number=number,
                title=title,
                page_start=int(page) if page else None,
            )
        return None
    return None


def extract_from_toc(text: str) -> list[Chapter]:
    """
    Recover chapter titles from a table of contents block.

    Reads the entries that follow a "Contents" heading up to the first line
    that is not an entry. Chapters carry titles and start pages only.
    """
    chapters: list[Chapter] = []
    in_toc = False

    for raw in text.splitlines():
        line = raw.strip()
        if not line or PAGE_MARKER_LINE.match(line):
            continue

        if not in_toc:
            in_toc = bool(TOC_HEADING.match(line))
            continue

        entry = _parse_toc_entry(line)
        if entry is None:
            if chapters:
                break
            continue
        chapters.append(entry)

    return chapters
