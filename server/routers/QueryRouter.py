from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import QueryRequest
from shared.models.search import RetrievalRequest, RetrievalResponse

router = APIRouter(prefix="/query", tags=["query"])


@router.post("")
async def query_documents(
    request: Request,
    body: QueryRequest,
    _: None = Depends(verify_api_key),
) -> RetrievalResponse:
    """Semantic search restricted to the documents the user may view.

    Args:
        request (Request): FastAPI request (provides app.state.retrieval_service).
        body (QueryRequest): Query text, user and limits.
        _ (None): Auth dependency result (unused).

    Returns:
        RetrievalResponse: Ranked chunks, or status "no_access" when the user
            may view no document.
    """
    retrieval_service = request.app.state.retrieval_service
    return await retrieval_service.do_search(RetrievalRequest(
        query=body.query,
        subject=body.get_subject(),
        top_k=body.top_k,
        consistency_token=body.consistency_token,
        timeout=body.timeout,
    ))
