"""Document store data models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class DocumentRecord(BaseModel):
    """Fields recorded against a single document."""

    document_id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=datetime.now)
    store_version: str = "1.0"


class StoreIndex(BaseModel):
    """Index mapping document ids to record files."""

    entries: dict[str, str] = Field(default_factory=dict)  # document_id -> file stem
