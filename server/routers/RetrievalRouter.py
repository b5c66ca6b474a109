from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import RetrieveRequest
from server.models.responses import RetrieveResponse, SearchResponse

router = APIRouter(prefix="/api/rag", tags=["retrieval"])


@router.post("/retrieve")
async def retrieve_chunks(
    request: Request,
    body: RetrieveRequest,
    _: None = Depends(verify_api_key),
) -> RetrieveResponse:
    """Return the chunks most relevant to a query within the requested tenant scope.

    Args:
        request (Request): FastAPI request (provides app.state.retriever).
        body (RetrieveRequest): Query and retrieval options.
        _ (None): Auth dependency result (unused).

    Returns:
        RetrieveResponse: Ranked chunks and their count.
    """
    retriever = request.app.state.retriever
    chunks = await retriever.retrieve(body.query, body.to_options())
    return RetrieveResponse(query=body.query, chunks=chunks, count=len(chunks))


@router.post("/search")
async def search_context(
    request: Request,
    body: RetrieveRequest,
    _: None = Depends(verify_api_key),
) -> SearchResponse:
    """Like /retrieve, plus the chunks rendered as a context block for a language model."""
    retriever = request.app.state.retriever
    chunks, context = await retriever.search(body.query, body.to_options())
    return SearchResponse(query=body.query, chunks=chunks, count=len(chunks), context=context)
