"""Warrant models: direct relation facts between a subject and a resource."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class WarrantOp(str, Enum):
    """Write operation for a warrant."""

    CREATE = "create"
    DELETE = "delete"


class Subject(BaseModel):
    """A principal (user or group). Opaque identifier plus its type."""

    model_config = ConfigDict(frozen=True)

    resource_type: str = "user"
    resource_id: str

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id}"


class Warrant(BaseModel):
    """
    A single granted relation: resource#relation@subject.

    Warrants are the only mutable state of the authorization model. Relations
    implied by the schema are computed at read time and never stored as warrants.

    Attributes:
        resource_type:  Type of the resource (e.g. "document").
        resource_id:    Identifier of the resource, unique within its type.
        relation:       Relation name declared for the resource type (e.g. "owner").
        subject:        The principal holding the relation.
    """

    model_config = ConfigDict(frozen=True)

    resource_type: str
    resource_id: str
    relation: str
    subject: Subject

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id}#{self.relation}@{self.subject}"


class WriteResult(BaseModel):
    """Outcome of a warrant write.

    Attributes:
        consistency_token: Backend token that, when passed to a later read,
                           guarantees the read observes this write. None when
                           the backend does not issue tokens.
        count:             Number of warrants in the write request.
        noop:              True when the backend reported the write as already applied.
    """

    consistency_token: str | None = None
    count: int = 0
    noop: bool = False


class WarrantsPage(BaseModel):
    """A single page of a warrant listing.

    Attributes:
        warrants:   Warrants on this page.
        next_page:  Cursor for the next page, or None on the last page.
    """

    warrants: list[Warrant] = []
    next_page: str | None = None
