"""File-backed document store."""

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import Any

from pdf_chapters.errors import PersistenceFailed
from pdf_chapters.store.models import DocumentRecord, StoreIndex


class JsonDocumentStore:
    """Keeps one JSON record per document under a root directory."""

    INDEX_FILE = "index.json"
    RECORDS_DIR = "records"

    def __init__(self, root: Path):
        self.root = root
        self.index_path = root / self.INDEX_FILE
        self._index: StoreIndex | None = None

    def _record_path(self, document_id: str) -> Path:
        # Document ids may contain path separators; hash them for file names
        stem = hashlib.sha256(document_id.encode("utf-8")).hexdigest()[:32]
        return self.root / self.RECORDS_DIR / f"{stem}.json"

    def _load_index(self) -> StoreIndex:
        """Load or create the index."""
        if self._index is not None:
            return self._index

        if self.index_path.exists():
            try:
                data = json.loads(self.index_path.read_text())
                self._index = StoreIndex.model_validate(data)
            except Exception:
                self._index = StoreIndex()
        else:
            self._index = StoreIndex()

        return self._index

    def _save_index(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        index = self._load_index()
        self.index_path.write_text(index.model_dump_json(indent=2))

    def get(self, document_id: str) -> DocumentRecord | None:
        """Return the stored record, or None if absent or unreadable."""
        path = self._record_path(document_id)
        if not path.exists():
            return None
        try:
            return DocumentRecord.model_validate_json(path.read_text())
        except Exception:
            return None

    def update(self, document_id: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into the document's record."""
        record = self.get(document_id) or DocumentRecord(document_id=document_id)
        record.fields.update(fields)
        record.updated_at = datetime.now()

        path = self._record_path(document_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(record.model_dump_json(indent=2))

            index = self._load_index()
            index.entries[document_id] = path.stem
            self._save_index()
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailed(f"Could not write record {document_id}: {e}") from e

    def list_records(self) -> list[tuple[str, str]]:
        """List stored documents. Returns list of (document_id, file stem)."""
        index = self._load_index()
        return list(index.entries.items())
