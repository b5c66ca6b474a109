from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.ChunkDocument import ChunkDocument
from shared.clients.rag.models.SearchHits import DeleteReport, SearchHits
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ProviderUnavailableError
from shared.models.search import SearchResult


class RAGClientInterface(ClientInterface):
    """Search engine client: index management, bulk indexing, scoped search and deletion."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_index(self) -> str:
        """
        Returns the endpoint path of the index itself, used for existence checks and creation.

        Returns:
            str: The endpoint path (e.g. "/rag_chunks")
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for search requests (e.g. "/rag_chunks/_search").
        """
        pass

    @abstractmethod
    def _get_endpoint_bulk(self) -> str:
        """
        Returns the endpoint path for bulk indexing requests (e.g. "/_bulk?refresh=true").
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_by_query(self) -> str:
        """
        Returns the endpoint path for filter-based deletes.
        """
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        """
        Returns the endpoint path for counting documents matching a query.
        """
        pass

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @abstractmethod
    def get_index_definition(self, dimensions: int) -> dict:
        """
        Returns the settings and mappings used to create the index.

        Args:
            dimensions (int): Dimension of the embedding field. Must match the embedding provider.
        """
        pass

    @abstractmethod
    def get_bulk_payload(self, chunks: list[ChunkDocument]) -> str:
        """
        Serialises chunks into the engine's bulk indexing body.
        """
        pass

    @abstractmethod
    def get_filter_clauses(self, owner_id: str | None, property_id: int | None) -> list[dict]:
        """
        Returns the tenant filter clauses. The same clauses are applied to every
        part of a query so keyword and vector matches are scoped identically.
        """
        pass

    @abstractmethod
    def get_text_search_payload(self, query: str, filters: list[dict], size: int) -> dict:
        """
        Keyword relevance query over chunk text and title with fuzzy matching.
        """
        pass

    @abstractmethod
    def get_vector_search_payload(self, vector: list[float], filters: list[dict], size: int, min_score: float) -> dict:
        """
        Nearest neighbour query with cosine similarity, dropping hits below min_score.
        """
        pass

    @abstractmethod
    def get_hybrid_search_payload(self, query: str, vector: list[float], filters: list[dict], size: int) -> dict:
        """
        Single query combining the keyword clause as a soft booster with the
        nearest neighbour clause.
        """
        pass

    @abstractmethod
    def get_document_query(self, document_id: int) -> dict:
        """
        Returns the query matching every chunk of one document.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> SearchHits:
        """
        Extracts hits from a raw search response. Each hit is normalised to
        {"id", "score", "source"}.
        """
        pass

    @abstractmethod
    def extract_bulk_errors(self, raw_response: dict) -> list[str]:
        """
        Returns the error reasons of all failed items of a bulk response.
        """
        pass

    @abstractmethod
    def extract_delete_report(self, raw_response: dict) -> DeleteReport:
        pass

    @abstractmethod
    def extract_count(self, raw_response: dict) -> int:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_index_exists(self) -> bool:
        """Check if the index exists in the search engine.

        Returns:
            bool: True if the index exists, False otherwise.
        """
        resp = await self.do_request(method="HEAD", endpoint=self._get_endpoint_index())
        return resp.status_code == 200

    async def do_create_index(self, dimensions: int = 384) -> httpx.Response:
        """Create the index with settings and mappings.

        Args:
            dimensions (int): Dimension of the embedding field.

        Returns:
            httpx.Response: The response from the create request.
        """
        return await self.do_request(
            method="PUT",
            json=self.get_index_definition(dimensions),
            endpoint=self._get_endpoint_index(),
            raise_on_error=True,
        )

    async def do_ensure_index(self, dimensions: int = 384) -> bool:
        """Create the index unless it already exists.

        Returns:
            bool: True if the index was created by this call.
        """
        if await self.do_index_exists():
            self.logging.debug("Index of %s already exists.", self.get_engine_name())
            return False
        await self.do_create_index(dimensions)
        self.logging.info("Created index on %s with %d dimensional embeddings.", self.get_engine_name(), dimensions)
        return True

    async def do_bulk_index(self, chunks: list[ChunkDocument]) -> int:
        """Index chunks in one bulk request. Existing chunks with the same ID are replaced.

        Args:
            chunks (list[ChunkDocument]): The chunks to index.

        Returns:
            int: Number of chunks indexed.

        Raises:
            ProviderUnavailableError: If the request fails or any item was rejected.
        """
        if not chunks:
            return 0
        resp = await self.do_request(
            method="POST",
            content=self.get_bulk_payload(chunks),
            endpoint=self._get_endpoint_bulk(),
            additional_headers={"Content-Type": "application/x-ndjson"},
            raise_on_error=True,
        )
        errors = self.extract_bulk_errors(resp.json())
        if errors:
            self.logging.error("Bulk indexing rejected %d of %d chunks: %s", len(errors), len(chunks), errors[0])
            raise ProviderUnavailableError(f"Bulk indexing rejected {len(errors)} chunk(s): {errors[0]}")
        return len(chunks)

    async def do_search(self, body: dict) -> list[SearchResult]:
        """Run a search and map the hits to SearchResult objects in engine order.

        Args:
            body (dict): Query built by one of the get_*_search_payload() methods.

        Returns:
            list[SearchResult]: The hits with their engine-native scores.
        """
        resp = await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        hits = self.extract_search_hits(resp.json())
        if hits.timed_out:
            self.logging.warning("Search on %s timed out, results may be partial.", self.get_engine_name())
        results: list[SearchResult] = []
        for hit in hits.hits:
            source = hit.get("source") or {}
            results.append(SearchResult(
                chunk_id=int(source.get("chunk_id", hit.get("id"))),
                document_id=int(source.get("document_id", 0)),
                title=source.get("title") or "",
                chunk_text=source.get("chunk_text") or "",
                chunk_index=int(source.get("chunk_index", 0)),
                owner_id=source.get("owner_id"),
                property_id=source.get("property_id"),
                score=float(hit.get("score") or 0.0),
            ))
        return results

    async def do_delete_by_document(self, document_id: int) -> DeleteReport:
        """Delete every chunk of a document.

        Args:
            document_id (int): The parent document ID.

        Returns:
            DeleteReport: Deleted count and any partial failures.
        """
        resp = await self.do_request(
            method="POST",
            json={"query": self.get_document_query(document_id)},
            endpoint=self._get_endpoint_delete_by_query(),
            raise_on_error=True,
        )
        report = self.extract_delete_report(resp.json())
        if report.is_partial:
            self.logging.warning(
                "Delete of document %d was partial: %d deleted, %d failures, timed_out=%s",
                document_id, report.deleted, len(report.failures), report.timed_out,
            )
        return report

    async def do_count_by_document(self, document_id: int) -> int:
        """Count the chunks indexed for one document."""
        resp = await self.do_request(
            method="POST",
            json={"query": self.get_document_query(document_id)},
            endpoint=self._get_endpoint_count(),
            raise_on_error=True,
        )
        return self.extract_count(resp.json())
