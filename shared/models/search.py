"""Pydantic models for access-filtered retrieval requests and responses."""

from enum import Enum

from pydantic import BaseModel, Field

from shared.clients.authz.models.Warrant import Subject


class RetrievalStage(str, Enum):
    """Stages of a single retrieval request."""

    START = "start"
    RESOLVE_ACCESS = "resolve_access"
    NO_ACCESS = "no_access"
    SEARCH = "search"
    DONE = "done"


class RetrievalStatus(str, Enum):
    """Terminal outcome of a retrieval request."""

    OK = "ok"
    NO_ACCESS = "no_access"


class RetrievalRequest(BaseModel):
    """A similarity query issued on behalf of a subject.

    Attributes:
        query:             Natural language query text.
        subject:           The principal the results are filtered for.
        top_k:             Maximum number of chunks. None uses RETRIEVAL_TOP_K.
        consistency_token: Token of a prior grant the access check must observe.
        timeout:           Per-call timeout in seconds for every backend request.
    """

    query: str = Field(min_length=1)
    subject: Subject
    top_k: int | None = Field(default=None, ge=1)
    consistency_token: str | None = None
    timeout: float | None = Field(default=None, gt=0)


class RetrievalResultItem(BaseModel):
    """A single chunk returned to the caller."""

    chunk_id: str
    parent_resource_id: str
    document_name: str
    score: float
    text: str
    position: int | None = None


class RetrievalResponse(BaseModel):
    """Ranked, access-filtered chunks for one request.

    Attributes:
        status:                  "no_access" when the subject may view no document.
        accessible_resource_ids: The allow-list resolved for this request.
    """

    query: str
    subject: Subject
    status: RetrievalStatus
    accessible_resource_ids: list[str] = []
    results: list[RetrievalResultItem] = []
    total: int = 0
