"""VectorPoint model: metadata stored alongside each embedded chunk in a RAG backend."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Metadata payload stored alongside each vector chunk in a RAG backend.

    The parent_resource_id field is mandatory: it is the join key of the access
    filter and must match the resource_id of the document in the relation store.

    Attributes:
        chunk_id:            Stable chunk identifier (e.g. "chunk_doc_sherlock-holmes_3").
        parent_resource_id:  MANDATORY, resource id of the parent document.
        position:            Zero-based position of this chunk within the document.
        text:                Raw text content of this chunk.
        document_name:       Human-readable document name, for display purposes.
        source:              Origin of the document (e.g. file path).
        content_hash:        SHA-256 hex digest of the whole document text.
                             Identical across all chunks of the same document version.
    """

    chunk_id: str
    parent_resource_id: str
    position: int
    text: str
    document_name: str | None = None
    source: str | None = None
    content_hash: str | None = None
