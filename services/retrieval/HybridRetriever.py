"""Hybrid retrieval over the chunk index.

Combines keyword relevance and vector similarity in one search-engine query,
scoped to the tenant, then deduplicates and optionally re-ranks by keyword
overlap with the query.
"""

import math
import re

from services.embedding.EmbeddingProvider import EmbeddingProvider
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import KBScope
from shared.models.errors import ValidationError
from shared.models.search import RetrievalOptions, SearchResult, SearchType

CANDIDATE_FACTOR = 1.5
RERANK_WORD_BOOST = 0.1
RERANK_MAX_BOOST = 0.5
RERANK_MIN_WORD_LEN = 4

CONTEXT_HEADER = "Relevant information from the knowledge base:"
EMPTY_CONTEXT = "No relevant information found in the knowledge base."

_WORD = re.compile(r"\w+")


class HybridRetriever:
    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embedding_provider: EmbeddingProvider,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag = rag_client
        self._embeddings = embedding_provider

    ##########################################
    ############### RETRIEVAL ################
    ##########################################

    async def retrieve(self, query: str, options: RetrievalOptions | None = None) -> list[SearchResult]:
        """Return at most top_k chunks relevant to the query, best first.

        Args:
            query (str): Natural-language query.
            options (RetrievalOptions | None): Scope, search type and ranking options.

        Returns:
            list[SearchResult]: Unique chunks sorted by (re-ranked) score.

        Raises:
            ValidationError: On a blank query, top_k < 1, or a property/owner scope without owner_id.
            ProviderUnavailableError: If embedding or search fails.
        """
        options = options or RetrievalOptions()
        self._validate(query, options)

        # owner scope spans all properties of the owner
        property_id = options.property_id if options.kb_scope != KBScope.OWNER else None
        filters = self._rag.get_filter_clauses(options.owner_id, property_id)
        size = math.ceil(options.top_k * CANDIDATE_FACTOR)

        if options.search_type == SearchType.TEXT:
            body = self._rag.get_text_search_payload(query, filters, size)
        else:
            vector = await self._embeddings.embed(query)
            if options.search_type == SearchType.VECTOR:
                body = self._rag.get_vector_search_payload(vector, filters, size, options.min_score)
            else:
                body = self._rag.get_hybrid_search_payload(query, vector, filters, size)

        results = await self._rag.do_search(body)
        if options.search_type == SearchType.VECTOR:
            results = [r for r in results if r.score >= options.min_score]

        results = self.dedupe(results)
        if options.rerank and len(results) > options.top_k:
            results = self.rerank(query, results)

        self.logging.debug(
            "Retrieved %d/%d chunks for %s search (scope=%s, owner=%s, property=%s).",
            min(len(results), options.top_k), len(results), options.search_type.value,
            options.kb_scope.value, options.owner_id, property_id,
        )
        return results[:options.top_k]

    async def search(self, query: str, options: RetrievalOptions | None = None) -> tuple[list[SearchResult], str]:
        """Retrieve chunks and render them as an LLM context block."""
        results = await self.retrieve(query, options)
        return results, self.format_context(results)

    @staticmethod
    def _validate(query: str, options: RetrievalOptions) -> None:
        if not query or not query.strip():
            raise ValidationError("Query must not be empty.")
        if options.top_k < 1:
            raise ValidationError(f"top_k must be at least 1, got {options.top_k}.")
        if options.kb_scope in (KBScope.PROPERTY, KBScope.OWNER) and not options.owner_id:
            raise ValidationError(f"owner_id is required for {options.kb_scope.value} scoped retrieval.")

    ##########################################
    ################ RANKING #################
    ##########################################

    @staticmethod
    def dedupe(results: list[SearchResult]) -> list[SearchResult]:
        """Keep the best-scoring hit per chunk_id, sorted by score (stable)."""
        best: dict[int, SearchResult] = {}
        for result in results:
            current = best.get(result.chunk_id)
            if current is None or result.score > current.score:
                best[result.chunk_id] = result
        return sorted(best.values(), key=lambda r: r.score, reverse=True)

    @staticmethod
    def rerank(query: str, results: list[SearchResult]) -> list[SearchResult]:
        """Boost chunks sharing longer words with the query.

        Each query word of four or more characters found in the chunk text adds
        10% of the base score, up to 50%.
        """
        words = list(dict.fromkeys(w for w in _WORD.findall(query.lower()) if len(w) >= RERANK_MIN_WORD_LEN))
        reranked: list[SearchResult] = []
        for result in results:
            text = result.chunk_text.lower()
            hits = sum(1 for word in words if word in text)
            boost = min(hits * RERANK_WORD_BOOST, RERANK_MAX_BOOST)
            reranked.append(result.model_copy(update={"rerank_score": result.score * (1 + boost)}))
        return sorted(reranked, key=lambda r: r.ranking_score, reverse=True)

    @staticmethod
    def format_context(results: list[SearchResult]) -> str:
        if not results:
            return EMPTY_CONTEXT
        blocks = [f'[{i}] From "{r.title}":\n{r.chunk_text}' for i, r in enumerate(results, start=1)]
        return CONTEXT_HEADER + "\n\n" + "\n\n".join(blocks)
