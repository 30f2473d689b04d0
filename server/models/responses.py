from pydantic import BaseModel

from shared.clients.authz.models.Warrant import Subject, Warrant


class CheckResponse(BaseModel):
    subject: Subject
    relation: str
    resource_type: str
    resource_id: str
    allowed: bool


class AccessibleDocumentsResponse(BaseModel):
    subject: Subject
    relation: str
    resource_type: str
    resource_ids: list[str]
    total: int


class WarrantsResponse(BaseModel):
    warrants: list[Warrant]
    total: int


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
    type: str
