"""Extraction orchestrator: sequences inspection, text extraction and segmentation."""

import logging
from typing import Callable

from pdf_chapters.config import ExtractionSettings
from pdf_chapters.core.normalizer import fill_page_ranges, normalize
from pdf_chapters.core.segmenter import extract_from_toc, segment
from pdf_chapters.core.sources import (
    DocumentReference,
    Fetcher,
    StorageClient,
    fallback_fetch,
    primary_fetch,
)
from pdf_chapters.core.structure import inspect
from pdf_chapters.core.text_layer import extract
from pdf_chapters.errors import ExtractionError
from pdf_chapters.models.document import (
    Chapter,
    PageCountConfidence,
    StructuralPageCount,
)
from pdf_chapters.models.extraction import (
    ExtractionResult,
    ResultTier,
    TextLayer,
    Unavailable,
)
from pdf_chapters.store.updates import DocumentStore, build_update

log = logging.getLogger(__name__)

TextExtractor = Callable[[bytes, ExtractionSettings], TextLayer | Unavailable]


class ChapterExtractor:
    """
    Run the extraction pipeline for one document per call.

    Every call returns an ExtractionResult whose tier records how far the
    pipeline got: FULL (chapters found), PAGE_COUNT_ONLY, or UNEXTRACTABLE
    (not even a page count). Nothing is raised to the caller.
    """

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        store: DocumentStore | None = None,
        fetcher: Fetcher | None = None,
        storage: StorageClient | None = None,
        text_extractor: TextExtractor = extract,
    ):
        self.settings = settings or ExtractionSettings()
        self.store = store
        self.fetcher = fetcher
        self.storage = storage
        self.primary = primary_fetch(self.settings)
        self.fallback = fallback_fetch(self.settings)
        self._extract_text = text_extractor

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run(self, data: bytes | None, document_id: str | None = None) -> ExtractionResult:
        """Extract from bytes already in hand."""
        if not data:
            result, full_text = _unextractable(["No document bytes available"]), ""
        else:
            page_count = inspect(data, self.settings.bytes_per_page)
            log.info(
                f"Structural page count: {page_count.count} ({page_count.confidence.value})"
            )
            try:
                result, full_text = self._from_bytes(data, page_count)
            except Exception as e:
                log.exception(f"Extraction failed unexpectedly: {e}")
                result = _page_count_only(page_count, [f"Unexpected error: {e}"])
                full_text = ""

        self._persist(document_id, result, full_text)
        return result

    def run_reference(
        self, reference: DocumentReference, document_id: str | None = None
    ) -> ExtractionResult:
        """Fetch the document, then extract. Falls back to a page-count-only fetch."""
        try:
            data = self.primary.fetch(reference, self.fetcher, self.storage)
        except ExtractionError as e:
            log.warning(f"Primary fetch failed ({e.kind.value}): {e}")
            warnings = [f"Primary fetch failed ({e.kind.value}): {e}"]
            result = self._recover_page_count(reference, warnings)
            self._persist(document_id, result, "")
            return result

        return self.run(data, document_id)

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _from_bytes(
        self, data: bytes, page_count: StructuralPageCount
    ) -> tuple[ExtractionResult, str]:
        layer = self._extract_text(data, self.settings)
        if isinstance(layer, Unavailable):
            warning = f"Text layer unavailable ({layer.reason.value})"
            if layer.detail:
                warning += f": {layer.detail}"
            return _page_count_only(page_count, [warning]), ""

        # The loaded document's page count supersedes the structural estimate
        verified = StructuralPageCount(
            count=max(1, layer.page_count), confidence=PageCountConfidence.VERIFIED
        )
        metadata = layer.metadata.model_copy() if layer.metadata else None

        if not any(page.text.strip() for page in layer.pages):
            log.warning("No text layer found. Document may be scanned or image-based.")
            result = _page_count_only(
                verified, ["No text layer found. Document may be scanned or image-based."]
            )
            result.metadata = metadata
            return result, ""

        full_text = layer.full_text
        try:
            chapters = self._chapters_from(full_text, layer.page_count)
        except Exception as e:
            log.exception(f"Segmentation failed: {e}")
            result = _page_count_only(verified, [f"Segmentation failed: {e}"])
            result.metadata = metadata
            result.full_text_length = len(full_text)
            return result, full_text

        log.info(f"Extracted {len(chapters)} chapters from {len(full_text)} characters")

        if not chapters:
            result = _page_count_only(verified, ["No chapter headings detected."])
        else:
            result = ExtractionResult(
                chapters=chapters, page_count=verified, tier=ResultTier.FULL
            )
        result.metadata = metadata
        result.full_text_length = len(full_text)
        return result, full_text

    def _chapters_from(self, full_text: str, last_page: int) -> list[Chapter]:
        chapters = normalize(segment(full_text, last_page=last_page))

        if not chapters and self.settings.toc_fallback:
            toc_chapters = normalize(extract_from_toc(full_text))
            if toc_chapters:
                log.info(f"Recovered {len(toc_chapters)} chapters from table of contents")
                chapters = fill_page_ranges(toc_chapters, last_page)

        return chapters

    def _recover_page_count(
        self, reference: DocumentReference, warnings: list[str]
    ) -> ExtractionResult:
        """Best-effort second fetch used only to read a structural page count."""
        try:
            data = self.fallback.fetch(reference, self.fetcher, self.storage)
        except ExtractionError as e:
            log.warning(f"Fallback fetch failed ({e.kind.value}): {e}")
            return _unextractable(warnings + [f"Fallback fetch failed ({e.kind.value}): {e}"])

        if not data:
            return _unextractable(warnings + ["Fallback fetch returned no bytes"])

        page_count = inspect(data, self.settings.bytes_per_page)
        log.info(f"Fallback: {page_count.count} pages from structure")
        return _page_count_only(page_count, warnings)

    def _persist(
        self, document_id: str | None, result: ExtractionResult, full_text: str
    ) -> None:
        """Record the outcome against the document; failures are logged only."""
        if document_id is None or self.store is None:
            return
        try:
            self.store.update(document_id, build_update(result, full_text))
        except Exception as e:
            log.error(f"Could not persist extraction for {document_id}: {e}")
        else:
            log.info(f"Persisted extraction for {document_id}")


def _page_count_only(
    page_count: StructuralPageCount, warnings: list[str]
) -> ExtractionResult:
    return ExtractionResult(
        page_count=page_count, tier=ResultTier.PAGE_COUNT_ONLY, warnings=warnings
    )


def _unextractable(warnings: list[str]) -> ExtractionResult:
    return ExtractionResult(tier=ResultTier.UNEXTRACTABLE, warnings=warnings)
