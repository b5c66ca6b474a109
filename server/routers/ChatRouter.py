from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import ChatRequest
from server.models.responses import ChatHistoryResponse, ClearSessionResponse, HistoryItem
from shared.helper.HelperLanguage import HelperLanguage
from shared.models.chat import ChatReply
from shared.models.errors import ValidationError
from shared.models.tools import ToolContext

router = APIRouter(prefix="/api/rag/chat", tags=["chat"])


@router.post("")
async def chat(
    request: Request,
    body: ChatRequest,
    _: None = Depends(verify_api_key),
) -> ChatReply:
    """Answer a chat message in the scope of a property or an owner.

    Args:
        request (Request): FastAPI request (provides app.state.orchestrator).
        body (ChatRequest): The message and its scope; session_id is derived when omitted.
        _ (None): Auth dependency result (unused).

    Returns:
        ChatReply: The answer, its route and the tools used.

    Raises:
        ValidationError: If the message is blank or neither property_id nor owner_id is given.
    """
    if not body.message.strip():
        raise ValidationError("message is required.")
    if body.property_id is None and not body.owner_id:
        raise ValidationError(
            "Either property_id or owner_id is required.",
            user_message=HelperLanguage.message("scope_required", HelperLanguage.detect(body.message)),
        )

    orchestrator = request.app.state.orchestrator
    context = ToolContext(owner_id=body.owner_id, property_id=body.property_id, user_id=body.user_id)
    return await orchestrator.handle_message(body.message, body.resolve_session_id(), context)


@router.get("/history/{session_id}")
async def chat_history(
    request: Request,
    session_id: str,
    _: None = Depends(verify_api_key),
) -> ChatHistoryResponse:
    """Return the remembered message pairs of a session, oldest first."""
    pairs = request.app.state.session_store.history(session_id)
    return ChatHistoryResponse(
        session_id=session_id,
        messages=[HistoryItem(input=p.input, output=p.output) for p in pairs],
        count=len(pairs),
    )


@router.delete("/{session_id}")
async def clear_session(
    request: Request,
    session_id: str,
    _: None = Depends(verify_api_key),
) -> ClearSessionResponse:
    """Forget a session. Clearing an unknown session succeeds as well."""
    request.app.state.session_store.clear(session_id)
    return ClearSessionResponse(session_id=session_id)
