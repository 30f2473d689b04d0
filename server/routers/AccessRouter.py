from fastapi import APIRouter, Depends, Query, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import CheckRequest, ShareRequest, WarrantWriteRequest
from server.models.responses import AccessibleDocumentsResponse, CheckResponse, WarrantsResponse
from shared.clients.authz.models.Warrant import Subject, WriteResult

router = APIRouter(prefix="/access", tags=["access"], dependencies=[Depends(verify_api_key)])


@router.post("/check")
async def check_access(request: Request, body: CheckRequest) -> CheckResponse:
    """Point check: is the user related to the resource, directly or by inheritance?"""
    subject = body.get_subject()
    allowed = await request.app.state.evaluator.check(
        subject=subject,
        relation=body.relation,
        resource_type=body.resource_type,
        resource_id=body.resource_id,
        consistency_token=body.consistency_token,
        timeout=body.timeout,
    )
    return CheckResponse(
        subject=subject,
        relation=body.relation,
        resource_type=body.resource_type,
        resource_id=body.resource_id,
        allowed=allowed,
    )


@router.get("/documents")
async def list_accessible_documents(
    request: Request,
    user_id: str = Query(min_length=1),
    subject_type: str = "user",
    relation: str = "viewer",
    resource_type: str = "document",
    consistency_token: str | None = None,
    timeout: float | None = Query(default=None, gt=0),
) -> AccessibleDocumentsResponse:
    """All resources of a type the user holds `relation` on."""
    subject = Subject(resource_type=subject_type, resource_id=user_id)
    resource_ids = await request.app.state.evaluator.list_accessible(
        subject=subject,
        relation=relation,
        resource_type=resource_type,
        consistency_token=consistency_token,
        timeout=timeout,
    )
    return AccessibleDocumentsResponse(
        subject=subject,
        relation=relation,
        resource_type=resource_type,
        resource_ids=sorted(resource_ids),
        total=len(resource_ids),
    )


@router.post("/warrants")
async def write_warrants(request: Request, body: WarrantWriteRequest) -> WriteResult:
    """Create or delete direct warrants. Idempotent."""
    return await request.app.state.store.write_batch(body.warrants, body.op, timeout=body.timeout)


@router.get("/warrants")
async def list_warrants(
    request: Request,
    resource_type: str = "document",
    resource_id: str | None = None,
    relation: str | None = None,
    user_id: str | None = None,
    subject_type: str = "user",
    consistency_token: str | None = None,
    timeout: float | None = Query(default=None, gt=0),
) -> WarrantsResponse:
    """Direct warrants on a resource type, optionally narrowed."""
    subject = Subject(resource_type=subject_type, resource_id=user_id) if user_id else None
    warrants = await request.app.state.store.list_warrants(
        resource_type=resource_type,
        resource_id=resource_id,
        relation=relation,
        subject=subject,
        consistency_token=consistency_token,
        timeout=timeout,
    )
    return WarrantsResponse(warrants=warrants, total=len(warrants))


@router.post("/share")
async def share_documents(request: Request, body: ShareRequest) -> WriteResult:
    """Grant viewer access on documents the owner owns. All-or-nothing."""
    return await request.app.state.retrieval_service.do_share(
        owner=Subject(resource_type=body.subject_type, resource_id=body.owner_id),
        grantee=Subject(resource_type=body.subject_type, resource_id=body.grantee_id),
        resource_ids=body.resource_ids,
        timeout=body.timeout,
    )
