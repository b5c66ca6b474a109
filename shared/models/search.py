"""Pydantic models for hybrid retrieval options and results."""

from enum import Enum

from pydantic import BaseModel

from shared.models.document import KBScope


class SearchType(str, Enum):
    TEXT = "text"
    VECTOR = "vector"
    HYBRID = "hybrid"


class RetrievalOptions(BaseModel):
    """Options of a single retrieval call.

    owner_id is mandatory whenever kb_scope is property or owner; the retriever
    rejects the call otherwise instead of returning an empty result.
    """

    top_k: int = 5
    min_score: float = 0.7
    search_type: SearchType = SearchType.HYBRID
    rerank: bool = True
    owner_id: str | None = None
    property_id: int | None = None
    kb_scope: KBScope = KBScope.PROPERTY


class SearchResult(BaseModel):
    """A single chunk returned by the search engine.

    score is the engine-native relevance; rerank_score is only set when the
    keyword-overlap boost was applied.
    """

    chunk_id: int
    document_id: int
    title: str = ""
    chunk_text: str = ""
    chunk_index: int = 0
    owner_id: str | None = None
    property_id: int | None = None
    score: float = 0.0
    rerank_score: float | None = None

    @property
    def ranking_score(self) -> float:
        return self.rerank_score if self.rerank_score is not None else self.score
