import json

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.ChunkDocument import ChunkDocument
from shared.clients.rag.models.SearchHits import DeleteReport, SearchHits
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

TEXT_FIELDS = ["chunk_text^2", "title"]


class RAGClientElasticsearch(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._index_name = self.get_config_val("INDEX", default="rag_chunks", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Elasticsearch"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="INDEX", val_type="string", default="rag_chunks"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"ApiKey {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/"

    def _get_endpoint_index(self) -> str:
        return f"/{self._index_name}"

    def _get_endpoint_search(self) -> str:
        return f"/{self._index_name}/_search"

    def _get_endpoint_bulk(self) -> str:
        return "/_bulk?refresh=true"

    def _get_endpoint_delete_by_query(self) -> str:
        return f"/{self._index_name}/_delete_by_query?refresh=true&conflicts=proceed"

    def _get_endpoint_count(self) -> str:
        return f"/{self._index_name}/_count"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_index_definition(self, dimensions: int) -> dict:
        return {
            "settings": {
                "analysis": {
                    "analyzer": {
                        "custom_text_analyzer": {
                            "type": "custom",
                            "tokenizer": "standard",
                            "filter": ["lowercase", "asciifolding", "stop"],
                        }
                    }
                }
            },
            "mappings": {
                "properties": {
                    "chunk_id": {"type": "long"},
                    "document_id": {"type": "integer"},
                    "chunk_index": {"type": "integer"},
                    "title": {"type": "text", "analyzer": "custom_text_analyzer"},
                    "chunk_text": {"type": "text", "analyzer": "custom_text_analyzer"},
                    "owner_id": {"type": "keyword"},
                    "property_id": {"type": "integer"},
                    "embedding": {
                        "type": "dense_vector",
                        "dims": dimensions,
                        "index": True,
                        "similarity": "cosine",
                    },
                    "created_at": {"type": "date"},
                }
            },
        }

    def get_bulk_payload(self, chunks: list[ChunkDocument]) -> str:
        lines: list[str] = []
        for chunk in chunks:
            lines.append(json.dumps({"index": {"_index": self._index_name, "_id": str(chunk.chunk_id)}}))
            lines.append(chunk.model_dump_json())
        # the bulk API requires a trailing newline
        return "\n".join(lines) + "\n"

    def get_filter_clauses(self, owner_id: str | None, property_id: int | None) -> list[dict]:
        filters: list[dict] = []
        if owner_id is not None:
            filters.append({"term": {"owner_id": str(owner_id)}})
        if property_id is not None:
            filters.append({"term": {"property_id": property_id}})
        return filters

    def _multi_match(self, query: str) -> dict:
        return {
            "multi_match": {
                "query": query,
                "fields": TEXT_FIELDS,
                "type": "best_fields",
                "fuzziness": "AUTO",
            }
        }

    def _knn(self, vector: list[float], filters: list[dict], size: int) -> dict:
        knn: dict = {
            "field": "embedding",
            "query_vector": vector,
            "k": size,
            "num_candidates": size * 10,
        }
        if filters:
            knn["filter"] = filters
        return knn

    def get_text_search_payload(self, query: str, filters: list[dict], size: int) -> dict:
        bool_query: dict = {"must": [self._multi_match(query)]}
        if filters:
            bool_query["filter"] = filters
        return {"size": size, "query": {"bool": bool_query}, "_source": {"excludes": ["embedding"]}}

    def get_vector_search_payload(self, vector: list[float], filters: list[dict], size: int, min_score: float) -> dict:
        return {
            "size": size,
            "knn": self._knn(vector, filters, size),
            "min_score": min_score,
            "_source": {"excludes": ["embedding"]},
        }

    def get_hybrid_search_payload(self, query: str, vector: list[float], filters: list[dict], size: int) -> dict:
        bool_query: dict = {"should": [self._multi_match(query)]}
        if filters:
            bool_query["filter"] = filters
        return {
            "size": size,
            "query": {"bool": bool_query},
            "knn": self._knn(vector, filters, size),
            "_source": {"excludes": ["embedding"]},
        }

    def get_document_query(self, document_id: int) -> dict:
        return {"term": {"document_id": document_id}}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> SearchHits:
        hits_block = raw_response.get("hits") or {}
        total = hits_block.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)
        return SearchHits(
            hits=[
                {"id": hit.get("_id"), "score": hit.get("_score"), "source": hit.get("_source") or {}}
                for hit in hits_block.get("hits") or []
            ],
            total=total,
            took=raw_response.get("took", 0),
            timed_out=raw_response.get("timed_out", False),
        )

    def extract_bulk_errors(self, raw_response: dict) -> list[str]:
        if not raw_response.get("errors"):
            return []
        reasons: list[str] = []
        for item in raw_response.get("items") or []:
            action = next(iter(item.values()), {})
            error = action.get("error")
            if error:
                reasons.append(error.get("reason", str(error)) if isinstance(error, dict) else str(error))
        return reasons

    def extract_delete_report(self, raw_response: dict) -> DeleteReport:
        return DeleteReport(
            deleted=raw_response.get("deleted", 0),
            failures=raw_response.get("failures") or [],
            took=raw_response.get("took", 0),
            timed_out=raw_response.get("timed_out", False),
        )

    def extract_count(self, raw_response: dict) -> int:
        return int(raw_response.get("count", 0))
