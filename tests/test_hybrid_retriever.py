"""
Tests for HybridRetriever

Tests tenant scoping, search-type payloads, deduplication and re-ranking.
"""

import pytest
from unittest.mock import AsyncMock

from services.embedding.EmbeddingProvider import EmbeddingProvider
from services.retrieval.HybridRetriever import CONTEXT_HEADER, EMPTY_CONTEXT, HybridRetriever
from shared.clients.rag.elasticsearch.RAGClientElasticsearch import RAGClientElasticsearch
from shared.models.document import KBScope
from shared.models.errors import ValidationError
from shared.models.search import RetrievalOptions, SearchResult, SearchType


def _result(chunk_id: int, score: float, text: str = "", title: str = "Doc") -> SearchResult:
    return SearchResult(chunk_id=chunk_id, document_id=chunk_id // 10000, title=title, chunk_text=text, score=score)


class TestHybridRetriever:
    @pytest.fixture
    def rag_client(self, helper_config):
        client = RAGClientElasticsearch(helper_config=helper_config)
        client.do_search = AsyncMock(return_value=[])
        return client

    @pytest.fixture
    def retriever(self, helper_config, rag_client, embed_client):
        provider = EmbeddingProvider(helper_config=helper_config, embed_client=embed_client)
        return HybridRetriever(helper_config=helper_config, rag_client=rag_client, embedding_provider=provider)

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, retriever):
        with pytest.raises(ValidationError, match="empty"):
            await retriever.retrieve("   ", RetrievalOptions(owner_id="o1"))

    @pytest.mark.asyncio
    async def test_top_k_must_be_positive(self, retriever):
        with pytest.raises(ValidationError, match="top_k"):
            await retriever.retrieve("giá thuê", RetrievalOptions(top_k=0, owner_id="o1"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("scope", [KBScope.PROPERTY, KBScope.OWNER])
    async def test_scoped_retrieval_requires_owner(self, retriever, rag_client, scope):
        with pytest.raises(ValidationError, match="owner_id is required"):
            await retriever.retrieve("giá thuê", RetrievalOptions(kb_scope=scope))
        rag_client.do_search.assert_not_called()

    @pytest.mark.asyncio
    async def test_property_scope_filters_owner_and_property(self, retriever, rag_client):
        options = RetrievalOptions(owner_id="o1", property_id=7, kb_scope=KBScope.PROPERTY)

        await retriever.retrieve("giá thuê", options)

        body = rag_client.do_search.call_args.args[0]
        expected = [{"term": {"owner_id": "o1"}}, {"term": {"property_id": 7}}]
        assert body["query"]["bool"]["filter"] == expected
        assert body["knn"]["filter"] == expected

    @pytest.mark.asyncio
    async def test_owner_scope_ignores_property(self, retriever, rag_client):
        options = RetrievalOptions(owner_id="o1", property_id=7, kb_scope=KBScope.OWNER)

        await retriever.retrieve("giá thuê", options)

        body = rag_client.do_search.call_args.args[0]
        assert body["query"]["bool"]["filter"] == [{"term": {"owner_id": "o1"}}]

    @pytest.mark.asyncio
    async def test_global_scope_without_owner_is_unfiltered(self, retriever, rag_client):
        await retriever.retrieve("quy định thành phố", RetrievalOptions(kb_scope=KBScope.GLOBAL))

        body = rag_client.do_search.call_args.args[0]
        assert "filter" not in body["query"]["bool"]
        assert "filter" not in body["knn"]

    @pytest.mark.asyncio
    async def test_text_search_skips_embedding(self, retriever, rag_client, embed_client):
        options = RetrievalOptions(owner_id="o1", search_type=SearchType.TEXT)

        await retriever.retrieve("giá thuê", options)

        body = rag_client.do_search.call_args.args[0]
        assert "knn" not in body
        assert body["query"]["bool"]["must"][0]["multi_match"]["query"] == "giá thuê"
        assert embed_client.batches == []

    @pytest.mark.asyncio
    async def test_vector_search_drops_low_scores(self, retriever, rag_client):
        rag_client.do_search.return_value = [_result(1, 0.9), _result(2, 0.5)]
        options = RetrievalOptions(owner_id="o1", search_type=SearchType.VECTOR, min_score=0.7)

        results = await retriever.retrieve("giá thuê", options)

        body = rag_client.do_search.call_args.args[0]
        assert body["min_score"] == 0.7
        assert [r.chunk_id for r in results] == [1]

    @pytest.mark.asyncio
    async def test_candidate_pool_is_oversampled(self, retriever, rag_client):
        await retriever.retrieve("giá thuê", RetrievalOptions(owner_id="o1", top_k=4))

        body = rag_client.do_search.call_args.args[0]
        assert body["size"] == 6

    @pytest.mark.asyncio
    async def test_results_truncated_to_top_k(self, retriever, rag_client):
        rag_client.do_search.return_value = [_result(i, 1.0 - i / 10) for i in range(1, 8)]

        results = await retriever.retrieve("giá thuê", RetrievalOptions(owner_id="o1", top_k=3, rerank=False))

        assert [r.chunk_id for r in results] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_search_returns_context(self, retriever, rag_client):
        rag_client.do_search.return_value = [_result(1, 0.9, text="[Pricing]\nGiá thuê: 3.000.000 VND")]

        results, context = await retriever.search("giá thuê", RetrievalOptions(owner_id="o1"))

        assert len(results) == 1
        assert context.startswith(CONTEXT_HEADER)
        assert "3.000.000" in context


class TestRanking:
    def test_dedupe_keeps_best_score(self):
        results = HybridRetriever.dedupe([_result(1, 0.4), _result(2, 0.8), _result(1, 0.9)])

        assert [(r.chunk_id, r.score) for r in results] == [(1, 0.9), (2, 0.8)]

    def test_dedupe_is_idempotent_with_ties(self):
        once = HybridRetriever.dedupe([_result(1, 0.5), _result(2, 0.5), _result(1, 0.9), _result(3, 0.5), _result(2, 0.5)])

        assert HybridRetriever.dedupe(once) == once
        assert len({r.chunk_id for r in once}) == len(once) == 3
        assert [(r.chunk_id, r.score) for r in once] == [(1, 0.9), (2, 0.5), (3, 0.5)]

    def test_rerank_boosts_keyword_overlap(self):
        results = [
            _result(1, 1.0, text="Phòng có ban công rộng"),
            _result(2, 0.9, text="Giá thuê phòng bao gồm internet và nước"),
        ]

        reranked = HybridRetriever.rerank("giá thuê internet", results)

        assert reranked[0].chunk_id == 2
        assert reranked[0].rerank_score == pytest.approx(0.9 * 1.2)
        assert reranked[1].rerank_score == pytest.approx(1.0)

    def test_rerank_boost_is_capped(self):
        query = "alpha bravo charlie delta foxtrot hotel india"
        text = "alpha bravo charlie delta foxtrot hotel india"

        reranked = HybridRetriever.rerank(query, [_result(1, 1.0, text=text)])

        assert reranked[0].rerank_score == pytest.approx(1.5)

    def test_rerank_ignores_short_words(self):
        reranked = HybridRetriever.rerank("giá ở đâu", [_result(1, 1.0, text="giá ở đâu")])
        assert reranked[0].rerank_score == pytest.approx(1.0)

    def test_format_context_empty(self):
        assert HybridRetriever.format_context([]) == EMPTY_CONTEXT

    def test_format_context_numbers_sources(self):
        context = HybridRetriever.format_context([
            _result(1, 0.9, text="first", title="Nội quy"),
            _result(2, 0.8, text="second", title="Hợp đồng"),
        ])

        assert '[1] From "Nội quy":\nfirst' in context
        assert '[2] From "Hợp đồng":\nsecond' in context
