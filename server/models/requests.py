from pydantic import BaseModel, Field

from shared.models.document import KBScope
from shared.models.search import RetrievalOptions, SearchType


class RetrieveRequest(BaseModel):
    query: str
    top_k: int = 5
    min_score: float = 0.7
    search_type: SearchType = SearchType.HYBRID
    rerank: bool = True
    owner_id: str | None = None
    property_id: int | None = None
    kb_scope: KBScope = KBScope.PROPERTY

    def to_options(self) -> RetrievalOptions:
        return RetrievalOptions(**self.model_dump(exclude={"query"}))


class ChatRequest(BaseModel):
    message: str
    session_id: str | None = None
    user_id: str | None = None
    property_id: int | None = None
    owner_id: str | None = None

    def resolve_session_id(self) -> str:
        """Explicit session ID, else "{user}-property-{id}" or "{user}-owner-{id}"."""
        if self.session_id:
            return self.session_id
        user = self.user_id or "guest"
        if self.property_id is not None:
            return f"{user}-property-{self.property_id}"
        return f"{user}-owner-{self.owner_id}"


class ProcessDocumentRequest(BaseModel):
    document_id: int
    title: str = ""
    file_url: str | None = None
    text: str | None = None
    kb_scope: KBScope = KBScope.PROPERTY
    owner_id: str | None = None
    property_id: int | None = None
    metadata: dict = Field(default_factory=dict)
