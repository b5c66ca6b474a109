"""
Tests for the Elasticsearch RAG client

Payload builders are checked directly; requests go through httpx.MockTransport.
"""

import json

import pytest

from shared.clients.rag.elasticsearch.RAGClientElasticsearch import RAGClientElasticsearch
from shared.clients.rag.models.ChunkDocument import ChunkDocument, make_chunk_id
from shared.models.errors import ProviderUnavailableError


def _chunk(index: int) -> ChunkDocument:
    return ChunkDocument.build(
        document_id=42,
        chunk_index=index,
        title="Nội quy",
        chunk_text=f"[Rules and regulations]\nrule {index}",
        embedding=[0.5, 0.5, 0.5, 0.5],
        owner_id="o1",
        property_id=7,
    )


class TestChunkIds:
    def test_chunk_id_concatenates_document_and_index(self):
        assert make_chunk_id(42, 3) == 420003
        assert make_chunk_id(1, 0) == 10000

    def test_chunk_index_out_of_range(self):
        with pytest.raises(ValueError):
            make_chunk_id(1, 10000)

    def test_blank_chunk_text_rejected(self):
        with pytest.raises(ValueError):
            ChunkDocument.build(document_id=1, chunk_index=0, title="t", chunk_text="  ", embedding=[1.0])


class TestPayloads:
    @pytest.fixture
    def client(self, helper_config):
        return RAGClientElasticsearch(helper_config=helper_config)

    def test_index_definition(self, client):
        mapping = client.get_index_definition(384)["mappings"]["properties"]

        assert mapping["embedding"] == {"type": "dense_vector", "dims": 384, "index": True, "similarity": "cosine"}
        assert mapping["owner_id"] == {"type": "keyword"}

    def test_bulk_payload_is_ndjson(self, client):
        payload = client.get_bulk_payload([_chunk(0), _chunk(1)])
        lines = payload.split("\n")

        assert payload.endswith("\n")
        assert json.loads(lines[0]) == {"index": {"_index": "rag_chunks", "_id": "420000"}}
        assert json.loads(lines[1])["owner_id"] == "o1"
        assert json.loads(lines[2])["index"]["_id"] == "420001"

    def test_filters(self, client):
        assert client.get_filter_clauses(None, None) == []
        assert client.get_filter_clauses("o1", None) == [{"term": {"owner_id": "o1"}}]

    def test_hybrid_payload_uses_soft_keyword_clause(self, client):
        filters = client.get_filter_clauses("o1", 7)
        body = client.get_hybrid_search_payload("giá thuê", [0.1, 0.2], filters, 8)

        assert body["query"]["bool"]["should"][0]["multi_match"]["fuzziness"] == "AUTO"
        assert body["query"]["bool"]["filter"] == filters
        assert body["knn"]["k"] == 8
        assert body["knn"]["num_candidates"] == 80
        assert body["_source"] == {"excludes": ["embedding"]}

    def test_bulk_errors(self, client):
        raw = {"errors": True, "items": [
            {"index": {"_id": "1", "status": 201}},
            {"index": {"_id": "2", "error": {"type": "mapper_parsing_exception", "reason": "bad vector"}}},
        ]}
        assert client.extract_bulk_errors(raw) == ["bad vector"]
        assert client.extract_bulk_errors({"errors": False, "items": []}) == []


class TestRequests:
    @pytest.fixture
    def client(self, helper_config):
        return RAGClientElasticsearch(helper_config=helper_config)

    @pytest.mark.asyncio
    async def test_ensure_index_creates_missing_index(self, client, json_transport):
        calls = []
        await client.boot(transport=json_transport({
            "HEAD /rag_chunks": (404, {}),
            "PUT /rag_chunks": (200, {"acknowledged": True}),
        }, calls))
        try:
            assert await client.do_ensure_index(4) is True
        finally:
            await client.close()

        assert [c.method for c in calls] == ["HEAD", "PUT"]
        assert json.loads(calls[1].content)["mappings"]["properties"]["embedding"]["dims"] == 4

    @pytest.mark.asyncio
    async def test_ensure_index_keeps_existing_index(self, client, json_transport):
        await client.boot(transport=json_transport({"HEAD /rag_chunks": (200, {})}))
        try:
            assert await client.do_ensure_index(4) is False
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_search_maps_hits(self, client, json_transport):
        response = {
            "took": 3,
            "timed_out": False,
            "hits": {"total": {"value": 1}, "hits": [{
                "_id": "420001",
                "_score": 1.7,
                "_source": {
                    "chunk_id": 420001, "document_id": 42, "title": "Nội quy",
                    "chunk_text": "rule", "chunk_index": 1, "owner_id": "o1", "property_id": 7,
                },
            }]},
        }
        await client.boot(transport=json_transport({"POST /rag_chunks/_search": (200, response)}))
        try:
            results = await client.do_search({"query": {"match_all": {}}})
        finally:
            await client.close()

        assert len(results) == 1
        assert results[0].chunk_id == 420001
        assert results[0].score == pytest.approx(1.7)
        assert results[0].owner_id == "o1"

    @pytest.mark.asyncio
    async def test_bulk_index_rejection_raises(self, client, json_transport):
        response = {"errors": True, "items": [{"index": {"error": {"reason": "bad vector"}}}]}
        await client.boot(transport=json_transport({"POST /_bulk": (200, response)}))
        try:
            with pytest.raises(ProviderUnavailableError, match="bad vector"):
                await client.do_bulk_index([_chunk(0)])
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_bulk_index_sends_ndjson(self, client, json_transport):
        calls = []
        await client.boot(transport=json_transport({"POST /_bulk": (200, {"errors": False, "items": []})}, calls))
        try:
            assert await client.do_bulk_index([_chunk(0), _chunk(1)]) == 2
        finally:
            await client.close()

        assert calls[0].headers["content-type"] == "application/x-ndjson"
        assert calls[0].url.params["refresh"] == "true"

    @pytest.mark.asyncio
    async def test_delete_by_document_reports_partial(self, client, json_transport, caplog):
        response = {"deleted": 3, "failures": [{"id": "x"}], "timed_out": False}
        await client.boot(transport=json_transport({"POST /rag_chunks/_delete_by_query": (200, response)}))
        try:
            report = await client.do_delete_by_document(42)
        finally:
            await client.close()

        assert report.deleted == 3
        assert report.is_partial
        assert "partial" in caplog.text

    @pytest.mark.asyncio
    async def test_count_by_document(self, client, json_transport):
        calls = []
        await client.boot(transport=json_transport({"POST /rag_chunks/_count": (200, {"count": 5})}, calls))
        try:
            count = await client.do_count_by_document(42)
        finally:
            await client.close()

        assert count == 5
        assert json.loads(calls[0].content) == {"query": {"term": {"document_id": 42}}}

    @pytest.mark.asyncio
    async def test_server_error_is_provider_error(self, client, json_transport):
        await client.boot(transport=json_transport({"POST /rag_chunks/_search": (503, {"error": "down"})}))
        try:
            with pytest.raises(ProviderUnavailableError, match="503"):
                await client.do_search({})
        finally:
            await client.close()
