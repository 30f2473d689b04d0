from pydantic import BaseModel


class SearchHit(BaseModel):
    """A single nearest-neighbour match returned by a RAG backend.

    Attributes:
        chunk_id:            Stable chunk identifier from the payload.
        score:               Backend-defined similarity (e.g. cosine). Comparable
                             only within one result set.
        parent_resource_id:  Resource id of the document the chunk belongs to.
        text:                Chunk text.
        position:            Position of the chunk within its document, if stored.
        document_name:       Display name stored at ingestion time, if any.
    """

    chunk_id: str
    score: float
    parent_resource_id: str
    text: str
    position: int | None = None
    document_name: str | None = None
