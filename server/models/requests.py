from pydantic import BaseModel, Field

from shared.clients.authz.models.Warrant import Subject, Warrant, WarrantOp


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    subject_type: str = "user"
    top_k: int | None = Field(default=None, ge=1)
    consistency_token: str | None = None
    timeout: float | None = Field(default=None, gt=0)

    def get_subject(self) -> Subject:
        return Subject(resource_type=self.subject_type, resource_id=self.user_id)


class CheckRequest(BaseModel):
    user_id: str = Field(min_length=1)
    subject_type: str = "user"
    relation: str
    resource_type: str = "document"
    resource_id: str = Field(min_length=1)
    consistency_token: str | None = None
    timeout: float | None = Field(default=None, gt=0)

    def get_subject(self) -> Subject:
        return Subject(resource_type=self.subject_type, resource_id=self.user_id)


class WarrantWriteRequest(BaseModel):
    op: WarrantOp = WarrantOp.CREATE
    warrants: list[Warrant] = Field(min_length=1)
    timeout: float | None = Field(default=None, gt=0)


class ShareRequest(BaseModel):
    owner_id: str = Field(min_length=1)
    grantee_id: str = Field(min_length=1)
    subject_type: str = "user"
    resource_ids: list[str] = Field(min_length=1)
    timeout: float | None = Field(default=None, gt=0)
