import json

import pytest

from pdf_chapters.config import ExtractionSettings
from pdf_chapters.core import orchestrator
from pdf_chapters.core.orchestrator import ChapterExtractor
from pdf_chapters.errors import ErrorKind, FetchFailed, FetchTimeout
from pdf_chapters.models.document import ExtractedPage, PageCountConfidence
from pdf_chapters.models.extraction import ResultTier, TextLayer, Unavailable


class RecordingStore:
    def __init__(self, error=None):
        self.updates = []
        self.error = error

    def update(self, document_id, fields):
        if self.error:
            raise self.error
        self.updates.append((document_id, fields))


class ScriptedFetcher:
    """Returns or raises the scripted outcomes in order, recording timeouts."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.timeouts = []

    def get(self, url, timeout):
        self.timeouts.append(timeout)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def text_layer_of(*pages, page_count=None):
    return lambda data, settings: TextLayer(
        pages=[ExtractedPage(number=i + 1, text=t) for i, t in enumerate(pages)],
        page_count=page_count or len(pages),
    )


def test_full_tier_end_to_end(three_chapter_pdf):
    result = ChapterExtractor().run(three_chapter_pdf)

    assert result.tier is ResultTier.FULL
    assert not result.requires_manual_entry
    assert [c.number for c in result.chapters] == [1, 2, 3]
    assert [c.title for c in result.chapters] == ["Intro", "Growth", "Exit"]
    assert result.chapters[1].content == "Scaling the shop.\nHiring the first staff."
    assert [(c.page_start, c.page_end) for c in result.chapters] == [(1, 1), (2, 2), (3, 3)]
    assert result.page_count.count == 3
    assert result.page_count.confidence is PageCountConfidence.VERIFIED
    assert result.metadata.title == "Small Business Handbook"
    assert result.full_text_length > 0


def test_load_failure_degrades_to_page_count_only(broken_pdf):
    result = ChapterExtractor().run(broken_pdf)

    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    assert result.page_count.count == 3
    assert result.page_count.confidence is PageCountConfidence.EXACT_DECLARED
    assert result.chapters == []
    assert result.requires_manual_entry
    assert result.to_response().requires_manual_entry is True
    assert result.warnings and "load_failed" in result.warnings[0]


def test_tiny_unstructured_bytes_still_get_a_page_count():
    unavailable = lambda data, settings: Unavailable(reason=ErrorKind.LOAD_FAILED)
    result = ChapterExtractor(text_extractor=unavailable).run(b"garbage")

    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    assert result.page_count.count == 1
    assert result.page_count.confidence is PageCountConfidence.ESTIMATED_FROM_SIZE


@pytest.mark.parametrize("data", [None, b""])
def test_no_bytes_is_unextractable(data):
    result = ChapterExtractor().run(data)

    assert result.tier is ResultTier.UNEXTRACTABLE
    assert result.page_count is None
    response = result.to_response()
    assert response.success is False
    assert response.requires_manual_entry is True


def test_text_without_headings_is_page_count_only():
    extractor = ChapterExtractor(
        text_extractor=text_layer_of("Just prose here.", "More prose.", page_count=4)
    )
    result = extractor.run(b"%PDF /Count 9")

    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    # The engine's count supersedes the structural one
    assert result.page_count.count == 4
    assert result.page_count.confidence is PageCountConfidence.VERIFIED
    assert result.chapters == []
    assert result.full_text_length > 0


def test_blank_text_layer_is_page_count_only():
    extractor = ChapterExtractor(text_extractor=text_layer_of("", "  ", page_count=2))
    result = extractor.run(b"%PDF /Count 2")

    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    assert result.full_text_length == 0
    assert result.page_count.count == 2


def test_duplicate_headings_are_normalized():
    extractor = ChapterExtractor(
        text_extractor=text_layer_of(
            "Chapter 2: Growth\nbody",
            "Chapter 1: Intro\nbody",
            "Chapter 2: Growth again\nbody",
        )
    )
    result = extractor.run(b"%PDF")
    assert [(c.number, c.title) for c in result.chapters] == [(1, "Intro"), (2, "Growth")]


def test_toc_fallback_only_when_enabled():
    pages = ("Contents\nCh. 1 Basics .... 2\nCh. 2 Taxes .... 4", "prose", "prose", "prose")

    off = ChapterExtractor(text_extractor=text_layer_of(*pages)).run(b"%PDF")
    assert off.tier is ResultTier.PAGE_COUNT_ONLY

    on = ChapterExtractor(
        ExtractionSettings(toc_fallback=True), text_extractor=text_layer_of(*pages)
    ).run(b"%PDF")
    assert on.tier is ResultTier.FULL
    assert [(c.number, c.page_start, c.page_end) for c in on.chapters] == [(1, 2, 3), (2, 4, 4)]


def test_unexpected_error_keeps_structural_page_count():
    def explode(data, settings):
        raise RuntimeError("boom")

    result = ChapterExtractor(text_extractor=explode).run(b"%PDF")
    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    assert result.page_count.count == 1
    assert result.page_count.confidence is PageCountConfidence.ESTIMATED_FROM_SIZE
    assert "boom" in result.warnings[0]


def test_segmentation_error_keeps_verified_page_count(monkeypatch):
    def explode(text, last_page=None):
        raise ValueError("bad heading")

    monkeypatch.setattr(orchestrator, "segment", explode)
    extractor = ChapterExtractor(
        text_extractor=text_layer_of("Chapter 1: A", "body", page_count=4)
    )
    result = extractor.run(b"%PDF /Count 2")

    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    assert result.page_count.count == 4
    assert result.page_count.confidence is PageCountConfidence.VERIFIED
    assert "bad heading" in result.warnings[0]
    assert result.full_text_length > 0


def test_oversized_number_line_stays_in_chapter_body():
    huge = "7" * 5000
    extractor = ChapterExtractor(
        text_extractor=text_layer_of(f"Chapter 1: A\n{huge} Summary", page_count=4)
    )
    result = extractor.run(b"%PDF")

    assert result.tier is ResultTier.FULL
    assert [c.number for c in result.chapters] == [1]
    assert result.page_count.count == 4


def test_fallback_bytes_with_oversized_count():
    data = b"<< /Type /Pages /Count 3 >> << /Count " + b"9" * 5000 + b" >>"
    fetcher = ScriptedFetcher(FetchTimeout("slow"), data)
    result = ChapterExtractor(fetcher=fetcher).run_reference("https://example.com/a.pdf")

    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    assert result.page_count.count == 3


def test_result_is_persisted(three_chapter_pdf):
    store = RecordingStore()
    result = ChapterExtractor(store=store).run(three_chapter_pdf, document_id="book-1")

    (document_id, fields), = store.updates
    assert document_id == "book-1"
    assert fields["page_count"] == 3
    assert fields["total_chapters"] == 3
    assert json.loads(fields["chapters"])[0]["title"] == "Intro"
    assert fields["extracted_chapters_data"]["fullText"].startswith("--- Page 1 ---")
    assert result.tier is ResultTier.FULL


def test_persistence_failure_is_swallowed(three_chapter_pdf):
    store = RecordingStore(error=OSError("disk full"))
    result = ChapterExtractor(store=store).run(three_chapter_pdf, document_id="book-1")
    assert result.tier is ResultTier.FULL
    assert len(result.chapters) == 3


def test_nothing_persisted_without_document_id(three_chapter_pdf):
    store = RecordingStore()
    ChapterExtractor(store=store).run(three_chapter_pdf)
    assert store.updates == []


def test_run_reference_fetches_then_extracts(three_chapter_pdf):
    fetcher = ScriptedFetcher(three_chapter_pdf)
    result = ChapterExtractor(fetcher=fetcher).run_reference("https://example.com/book.pdf")

    assert result.tier is ResultTier.FULL
    assert fetcher.timeouts == [30.0]


def test_primary_fetch_failure_recovers_page_count(broken_pdf):
    fetcher = ScriptedFetcher(FetchTimeout("slow"), broken_pdf)
    store = RecordingStore()
    extractor = ChapterExtractor(store=store, fetcher=fetcher)

    result = extractor.run_reference("https://example.com/book.pdf", document_id="b")

    assert result.tier is ResultTier.PAGE_COUNT_ONLY
    assert result.page_count.count == 3
    assert fetcher.timeouts == [30.0, 10.0]
    assert "fetch_timeout" in result.warnings[0]
    assert store.updates[0][1]["page_count"] == 3


def test_both_fetches_failing_is_unextractable():
    fetcher = ScriptedFetcher(FetchFailed("404"), FetchFailed("404"))
    store = RecordingStore()
    result = ChapterExtractor(store=store, fetcher=fetcher).run_reference(
        "https://example.com/missing.pdf", document_id="b"
    )

    assert result.tier is ResultTier.UNEXTRACTABLE
    assert result.to_response().success is False
    assert len(result.warnings) == 2
    assert "page_count" not in store.updates[0][1]


def test_response_payload_shape(three_chapter_pdf):
    response = ChapterExtractor().run(three_chapter_pdf).to_response()
    payload = json.loads(response.to_json())

    assert payload["success"] is True
    assert payload["requiresManualEntry"] is False
    assert "message" not in payload
    assert payload["data"]["totalChapters"] == 3
    assert payload["data"]["pageCount"] == 3
    assert payload["data"]["chapters"][0]["pageStart"] == 1
    assert payload["data"]["metadata"]["author"] == "Dana Reyes"
    assert payload["data"]["fullTextLength"] > 0


def test_page_count_only_message(broken_pdf):
    response = ChapterExtractor().run(broken_pdf).to_response()
    assert response.success is True
    assert response.message == "PDF processed. Found 3 pages. Please enter chapters manually."
    assert response.data.total_chapters == 0
