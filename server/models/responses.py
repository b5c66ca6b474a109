from pydantic import BaseModel

from shared.models.search import SearchResult


class RetrieveResponse(BaseModel):
    query: str
    chunks: list[SearchResult]
    count: int


class SearchResponse(RetrieveResponse):
    context: str


class HistoryItem(BaseModel):
    input: str
    output: str


class ChatHistoryResponse(BaseModel):
    session_id: str
    messages: list[HistoryItem]
    count: int


class ClearSessionResponse(BaseModel):
    session_id: str
    cleared: bool = True


class ProcessDocumentResponse(BaseModel):
    status: str
    document_id: int


class GateStatus(BaseModel):
    active: int
    waiting: int
    capacity: int


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    search_engine: str
    embedding_ready: bool
    sessions: int
    gate: GateStatus

