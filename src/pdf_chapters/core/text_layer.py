"""Text layer extraction with a bounded document load."""

import io
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from types import ModuleType
from typing import Any

# Suppress warnings about malformed PDF object references from PDF libraries
logging.getLogger("pdfminer").setLevel(logging.ERROR)
logging.getLogger("pypdf").setLevel(logging.ERROR)

import pypdf

from pdf_chapters.config import ExtractionSettings
from pdf_chapters.errors import (
    ErrorKind,
    LoadFailed,
    LoadTimeout,
    PageExtractionFailed,
)
from pdf_chapters.models.document import DocumentMetadata, ExtractedPage
from pdf_chapters.models.extraction import TextLayer, Unavailable

log = logging.getLogger(__name__)


# =============================================================================
# Engine Capability
# =============================================================================


def load_engine() -> ModuleType | Unavailable:
    """Import the layout-aware parsing engine, or report it as unavailable."""
    try:
        import pdfplumber
    except ImportError as e:
        log.warning(f"Text extraction engine not installed: {e}")
        return Unavailable(reason=ErrorKind.ENGINE_MISSING, detail=str(e))
    return pdfplumber


LoadedDocument = tuple[Any, int, DocumentMetadata | None]


def _open_document(engine: ModuleType, data: bytes) -> LoadedDocument:
    pdf = engine.open(io.BytesIO(data))
    try:
        page_count = len(pdf.pages)
        if page_count == 0:
            raise LoadFailed("document has no pages")
        metadata = read_metadata(data)
    except Exception:
        pdf.close()
        raise
    return pdf, page_count, metadata


def _close_abandoned(future: Future) -> None:
    """Close a document whose load finished after the caller gave up on it."""
    if future.cancelled() or future.exception() is not None:
        return
    pdf, _, _ = future.result()
    pdf.close()


def load_document(
    engine: ModuleType, data: bytes, timeout: float
) -> LoadedDocument | Unavailable:
    """
    Open the document in a worker thread, racing it against ``timeout``.

    Returns the open document, its page count and its info dictionary; the
    pdfplumber and pypdf parses both run inside the timeout. A timeout or
    parse error yields Unavailable; there is no retry.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdf-load")
    future = executor.submit(_open_document, engine, data)
    try:
        loaded = future.result(timeout=timeout)
    except FutureTimeout:
        log.warning(f"Document load exceeded {timeout:.0f}s, giving up")
        future.add_done_callback(_close_abandoned)
        error = LoadTimeout(f"load exceeded {timeout}s")
        return Unavailable(reason=error.kind, detail=str(error))
    except Exception as e:
        log.warning(f"Document load failed: {e}")
        return Unavailable(reason=ErrorKind.LOAD_FAILED, detail=str(e))
    finally:
        executor.shutdown(wait=False)

    return loaded


# =============================================================================
# Metadata
# =============================================================================


def _text_field(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _date_field(info: pypdf.DocumentInformation, attr: str) -> Any:
    # pypdf raises on malformed date strings
    try:
        return getattr(info, attr)
    except Exception:
        return None


def read_metadata(data: bytes) -> DocumentMetadata | None:
    """Read the document info dictionary; None when absent or unreadable."""
    try:
        info = pypdf.PdfReader(io.BytesIO(data)).metadata
    except Exception as e:
        log.debug(f"Metadata unavailable: {e}")
        return None

    if not info:
        return None

    metadata = DocumentMetadata(
        title=_text_field(info.title),
        author=_text_field(info.author),
        subject=_text_field(info.subject),
        creator=_text_field(info.creator),
        producer=_text_field(info.producer),
        created_at=_date_field(info, "creation_date"),
        modified_at=_date_field(info, "modification_date"),
    )
    if not metadata.model_dump(exclude_none=True):
        return None
    return metadata


# =============================================================================
# Line Reconstruction
# =============================================================================


def cluster_lines(fragments: list[dict], tolerance: float = 5.0) -> list[str]:
    """
    Group positioned text fragments into lines.

    Fragments whose ``top`` lies within ``tolerance`` of the first fragment of
    the current line join that line. Lines come out top-to-bottom, fragments
    within a line left-to-right, joined with single spaces.
    """
    lines: list[list[dict]] = []
    line_top = 0.0

    for fragment in sorted(fragments, key=lambda f: (f["top"], f["x0"])):
        if not fragment.get("text", "").strip():
            continue
        if lines and abs(fragment["top"] - line_top) <= tolerance:
            lines[-1].append(fragment)
        else:
            lines.append([fragment])
            line_top = fragment["top"]

    return [
        " ".join(f["text"] for f in sorted(line, key=lambda f: f["x0"]))
        for line in lines
    ]


def extract_page_text(page, tolerance: float = 5.0) -> str:
    """Reconstruct a pdfplumber page's text line by line."""
    words = page.extract_words()
    return "\n".join(cluster_lines(words, tolerance))


# =============================================================================
# Extractor
# =============================================================================


def extract(
    data: bytes, settings: ExtractionSettings | None = None
) -> TextLayer | Unavailable:
    """
    Recover the text layer of a PDF.

    Any failure to obtain the engine or load the document degrades to
    Unavailable. Pages that fail individually are skipped.
    """
    settings = settings or ExtractionSettings()

    engine = load_engine()
    if isinstance(engine, Unavailable):
        return engine

    loaded = load_document(engine, data, settings.load_timeout)
    if isinstance(loaded, Unavailable):
        return loaded

    pdf, page_count, metadata = loaded
    log.info(f"Engine verified {page_count} pages")

    try:
        limit = page_count
        if settings.max_pages is not None:
            limit = min(page_count, settings.max_pages)

        pages: list[ExtractedPage] = []
        for number in range(1, limit + 1):
            try:
                text = extract_page_text(pdf.pages[number - 1], settings.line_tolerance)
            except Exception as e:
                log.warning(f"Skipping page: {PageExtractionFailed(number, e)}")
                continue
            pages.append(ExtractedPage(number=number, text=text))

        log.info(f"Extracted text from {len(pages)} of {limit} pages")
        return TextLayer(pages=pages, metadata=metadata, page_count=page_count)
    except Exception as e:
        log.warning(f"Text extraction failed: {e}")
        return Unavailable(reason=ErrorKind.LOAD_FAILED, detail=str(e))
    finally:
        pdf.close()
