from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import ProcessDocumentRequest
from server.models.responses import ProcessDocumentResponse
from shared.clients.rag.models.SearchHits import DeleteReport
from shared.models.document import Document
from shared.models.errors import ValidationError

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.post("/process", status_code=202)
async def process_document(
    request: Request,
    body: ProcessDocumentRequest,
    background_tasks: BackgroundTasks,
    _: None = Depends(verify_api_key),
) -> ProcessDocumentResponse:
    """Accept a document for ingestion and process it in the background.

    Args:
        request (Request): FastAPI request (provides app.state.ingest_service).
        body (ProcessDocumentRequest): Document identity, scope and either inline text or a file URL.
        background_tasks (BackgroundTasks): FastAPI background task queue.
        _ (None): Auth dependency result (unused).

    Returns:
        ProcessDocumentResponse: Acknowledgement with the document_id.
    """
    if body.text is None and not body.file_url:
        raise ValidationError("Either text or file_url is required.")

    ingest_service = request.app.state.ingest_service
    document = ingest_service.register(Document(
        id=body.document_id,
        title=body.title,
        kb_scope=body.kb_scope,
        owner_id=body.owner_id,
        property_id=body.property_id,
        source_url=body.file_url,
        metadata=body.metadata,
    ))
    background_tasks.add_task(ingest_service.process_document, document, body.text)
    return ProcessDocumentResponse(status="accepted", document_id=document.id)


@router.get("/{document_id}")
async def get_document(
    request: Request,
    document_id: int,
    _: None = Depends(verify_api_key),
) -> Document:
    """Return the ingestion status of a document, falling back to its indexed chunks."""
    document = await request.app.state.ingest_service.lookup_document(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} is not tracked")
    return document


@router.delete("/{document_id}")
async def delete_document(
    request: Request,
    document_id: int,
    _: None = Depends(verify_api_key),
) -> DeleteReport:
    """Delete every indexed chunk of a document."""
    return await request.app.state.ingest_service.delete_document(document_id)
