"""Pydantic models for source documents entering the ingestion pipeline."""

import hashlib

from pydantic import BaseModel


class SourceDocument(BaseModel):
    """A document read from the ingestion source.

    Attributes:
        resource_id: Stable resource id shared by the relation store and the index.
        name:        Human-readable name stored with every chunk.
        source:      Origin of the document (e.g. file path).
        content:     Full document text.
    """

    resource_id: str
    name: str
    source: str | None = None
    content: str

    def get_content_hash(self) -> str:
        return hashlib.sha256(self.content.encode("utf-8")).hexdigest()


class IngestReport(BaseModel):
    """Outcome counters of one ingestion run."""

    ingested: int = 0
    skipped: int = 0
    errors: int = 0
    chunks: int = 0
