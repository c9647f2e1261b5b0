"""Update requests sent to the persistence collaborator."""

import json
from datetime import datetime, timezone
from typing import Any, Protocol

from pdf_chapters.models.extraction import ExtractionResult


class DocumentStore(Protocol):
    """Persistence collaborator keyed by document identifier."""

    def update(self, document_id: str, fields: dict[str, Any]) -> None: ...


def build_update(
    result: ExtractionResult,
    full_text: str,
    extracted_at: datetime | None = None,
) -> dict[str, Any]:
    """
    Build the field update for a document record.

    The raw text and timestamp are always written; page_count only when a
    positive count is known; the chapter table only when chapters were found.
    """
    extracted_at = extracted_at or datetime.now(timezone.utc)
    page_count = result.page_count.count if result.page_count else 0

    fields: dict[str, Any] = {
        "extracted_chapters_data": {
            "fullText": full_text,
            "extractedAt": extracted_at.isoformat(),
            "pageCount": page_count,
        },
    }

    if page_count > 0:
        fields["page_count"] = page_count

    if result.chapters:
        fields["chapters"] = json.dumps(
            [
                c.model_dump(mode="json", by_alias=True, exclude_none=True)
                for c in result.chapters
            ]
        )
        fields["total_chapters"] = len(result.chapters)

    return fields
