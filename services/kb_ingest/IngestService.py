"""Knowledge-base ingestion service.

Takes a document (inline text or a file handed out by the property backend),
enriches it with listing metadata, splits it into titled chunks, embeds them
and indexes them into the search engine. Progress is tracked in memory per
document and reported back to the backend.
"""

import asyncio
import os
from urllib.parse import urlparse

from services.chunking.SemanticChunker import SemanticChunker
from services.embedding.EmbeddingProvider import EmbeddingProvider
from services.kb_ingest.TextExtractor import TextExtractor
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.ChunkDocument import ChunkDocument
from shared.clients.rag.models.SearchHits import DeleteReport
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, DocumentStatus, KBScope
from shared.models.errors import KBError, ValidationError

# metadata key -> label line prepended to the document text
ENRICHMENT_LABELS: list[tuple[str, str]] = [
    ("description", "Thông tin phòng trọ: {}"),
    ("price", "Giá thuê: {} VND/tháng"),
    ("room_size", "Diện tích: {} m²"),
    ("address_details", "Địa chỉ: {}"),
]


class IngestService:
    """Orchestrates the ingestion pipeline from raw document to indexed chunks."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embedding_provider: EmbeddingProvider,
        chunker: SemanticChunker,
        extractor: TextExtractor,
        backend_client: BackendClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag = rag_client
        self._embeddings = embedding_provider
        self._chunker = chunker
        self._extractor = extractor
        self._backend = backend_client
        self.concurrency = max(1, int(helper_config.get_number_val("INGEST_CONCURRENCY", default=5)))
        self._documents: dict[int, Document] = {}

    ##########################################
    ############### TRACKING #################
    ##########################################

    def get_document(self, document_id: int) -> Document | None:
        return self._documents.get(document_id)

    async def lookup_document(self, document_id: int) -> Document | None:
        """Tracked document, else one rebuilt from its indexed chunks.

        Tracking is in memory only, so documents ingested before a restart are
        reported as completed with the chunk count found in the index.
        """
        document = self.get_document(document_id)
        if document is not None:
            return document
        count = await self._rag.do_count_by_document(document_id)
        if count == 0:
            return None
        return Document(id=document_id, status=DocumentStatus.COMPLETED, chunk_count=count)

    def register(self, document: Document) -> Document:
        """Start tracking a document before it is processed.

        Raises:
            ValidationError: If a document with the same ID is still being processed.
        """
        current = self._documents.get(document.id)
        if current is not None and not current.is_terminal:
            raise ValidationError(f"Document {document.id} is already being processed.")
        self._documents[document.id] = document
        return document

    ##########################################
    ############### INGESTION ################
    ##########################################

    async def process_document(self, document: Document, text: str | None = None) -> Document:
        """Run the whole pipeline for one document.

        Any pipeline failure moves the document to failed with the reason; it is
        never raised. The final status is reported to the backend.

        Args:
            document (Document): A pending document.
            text (str | None): Inline text; downloaded from document.source_url when None.

        Returns:
            Document: The same document, now completed or failed.

        Raises:
            InvalidStatusTransitionError: If the document is not pending.
        """
        if self._documents.get(document.id) is not document:
            self.register(document)
        document.transition_to(DocumentStatus.PROCESSING)
        self.logging.info("Processing document id=%d ('%s', scope=%s)", document.id, document.title, document.kb_scope.value)

        try:
            document.chunk_count = await self._ingest(document, text)
            document.transition_to(DocumentStatus.COMPLETED)
            self.logging.info("Indexed document id=%d ('%s'): %d chunks.", document.id, document.title, document.chunk_count)
        except (KBError, ValueError) as exc:
            reason = exc.message if isinstance(exc, KBError) else str(exc)
            document.transition_to(DocumentStatus.FAILED, error=reason)
            self.logging.error("Ingestion of document id=%d failed: %s", document.id, reason)

        await self._report_status(document)
        return document

    async def process_many(self, items: list[tuple[Document, str | None]]) -> list[Document]:
        """Process documents concurrently, at most INGEST_CONCURRENCY at a time."""
        sem = asyncio.Semaphore(self.concurrency)

        async def _bounded(document: Document, text: str | None) -> Document:
            async with sem:
                return await self.process_document(document, text)

        documents = await asyncio.gather(*[_bounded(doc, text) for doc, text in items])
        completed = sum(1 for doc in documents if doc.status == DocumentStatus.COMPLETED)
        self.logging.info("Ingestion complete: %d completed, %d failed.", completed, len(documents) - completed)
        return list(documents)

    async def delete_document(self, document_id: int) -> DeleteReport:
        """Remove every chunk of a document from the index and stop tracking it."""
        report = await self._rag.do_delete_by_document(document_id)
        self._documents.pop(document_id, None)
        self.logging.info("Deleted %d chunks of document id=%d.", report.deleted, document_id)
        return report

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _ingest(self, document: Document, text: str | None) -> int:
        if document.kb_scope in (KBScope.PROPERTY, KBScope.OWNER) and not document.owner_id:
            raise ValidationError(f"owner_id is required for {document.kb_scope.value} scoped documents.")

        if text is None:
            text = await self._download_text(document)
        text = self.enrich_text(text, document.metadata)
        if not text.strip():
            raise ValidationError("Document contains no text.")

        report = self._chunker.chunk_document(text)
        if not report.chunks:
            raise ValidationError("Document produced no chunks.")

        chunk_texts = [chunk.text for chunk in report.chunks]
        vectors = await self._embeddings.embed_many(chunk_texts)
        chunks = [
            ChunkDocument.build(
                document_id=document.id,
                chunk_index=index,
                title=document.title or "Untitled",
                chunk_text=chunk_text,
                embedding=vector,
                owner_id=document.owner_id,
                property_id=document.property_id,
            )
            for index, (chunk_text, vector) in enumerate(zip(chunk_texts, vectors))
        ]

        # drop chunks of an earlier ingestion of this document before indexing the new ones
        await self._rag.do_delete_by_document(document.id)
        return await self._rag.do_bulk_index(chunks)

    async def _download_text(self, document: Document) -> str:
        if not document.source_url:
            raise ValidationError(f"Document {document.id} has neither text nor a source URL.")
        if self._backend is None:
            raise ValidationError(f"Document {document.id} needs a download but no backend client is configured.")
        response = await self._backend.do_download(document.source_url)
        filename = document.metadata.get("original_filename") or os.path.basename(urlparse(document.source_url).path)
        content_type = response.headers.get("content-type") or document.metadata.get("content_type")
        return self._extractor.extract(response.content, content_type, filename)

    @staticmethod
    def enrich_text(text: str, metadata: dict) -> str:
        """Prepend listing metadata as labelled lines the chunker recognises."""
        lines = [label.format(metadata[key]) for key, label in ENRICHMENT_LABELS if metadata.get(key)]
        if not lines:
            return text
        return "\n".join(lines) + "\n\n" + text

    async def _report_status(self, document: Document) -> None:
        if self._backend is None:
            return
        payload = {"status": document.status.value, "chunk_count": document.chunk_count, "error": document.error}
        try:
            await self._backend.do_update_document_status(document.id, payload)
        except KBError as exc:
            self.logging.warning("Could not report status of document id=%d to the backend: %s", document.id, exc.message)
