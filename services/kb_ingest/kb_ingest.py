"""Ingestion runner entry point.

Ingests local files (text, markdown, PDF, HTML) into the knowledge base
without going through the HTTP API. Several files get consecutive document
IDs starting at --document-id.

Usage:
    python -m services.kb_ingest.kb_ingest rules.md pricing.pdf --document-id 42 \
        --owner-id owner-7 --property-id 12
"""

import argparse
import asyncio
import mimetypes
import os

from services.chunking.SemanticChunker import SemanticChunker
from services.embedding.EmbeddingProvider import EmbeddingProvider
from services.kb_ingest.IngestService import IngestService
from services.kb_ingest.TextExtractor import TextExtractor
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.clients.backend.BackendClientManager import BackendClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.document import Document, DocumentStatus, KBScope
from shared.models.errors import KBError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest local documents into the knowledge base.")
    parser.add_argument("paths", nargs="+", help="Files to ingest.")
    parser.add_argument("--document-id", type=int, required=True, help="ID of the first document.")
    parser.add_argument("--title", default=None, help="Document title (default: file name).")
    parser.add_argument("--scope", choices=[s.value for s in KBScope], default=KBScope.PROPERTY.value)
    parser.add_argument("--owner-id", default=None)
    parser.add_argument("--property-id", type=int, default=None)
    parser.add_argument("--report-status", action="store_true", help="Report the outcome to the property backend.")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run the ingestion pipeline. Returns the process exit code."""
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    rag_client = RAGClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()
    backend_client: BackendClientInterface | None = None
    if args.report_status:
        backend_client = BackendClientManager(helper_config=config).get_client()

    embedding_provider = EmbeddingProvider(helper_config=config, embed_client=embed_client)
    extractor = TextExtractor(helper_config=config)

    try:
        # the search engine is required, without it there is nothing to ingest into
        try:
            await rag_client.boot()
            await rag_client.do_healthcheck()
            await rag_client.do_ensure_index(embedding_provider.dimensions)
            await embedding_provider.ensure_ready()
            if backend_client:
                await backend_client.boot()
        except KBError as e:
            logger.error("Error booting clients: %s. Aborting.", e.message)
            return 1

        items: list[tuple[Document, str | None]] = []
        for offset, path in enumerate(args.paths):
            with open(path, "rb") as handle:
                data = handle.read()
            content_type, _ = mimetypes.guess_type(path)
            document = Document(
                id=args.document_id + offset,
                title=args.title or os.path.basename(path),
                kb_scope=KBScope(args.scope),
                owner_id=args.owner_id,
                property_id=args.property_id,
                metadata={"original_filename": os.path.basename(path)},
            )
            try:
                text = extractor.extract(data, content_type, path)
            except KBError as e:
                logger.error("Skipping %s: %s", path, e.message)
                continue
            items.append((document, text))

        service = IngestService(
            helper_config=config,
            rag_client=rag_client,
            embedding_provider=embedding_provider,
            chunker=SemanticChunker(helper_config=config),
            extractor=extractor,
            backend_client=backend_client,
        )
        documents = await service.process_many(items)
        failed = [doc for doc in documents if doc.status == DocumentStatus.FAILED]
        for doc in failed:
            logger.error("Document id=%d ('%s') failed: %s", doc.id, doc.title, doc.error)
        if not failed:
            logger.info("Ingested %d documents.", len(documents), color="green")
        return 1 if failed or len(items) < len(args.paths) else 0
    finally:
        await embedding_provider.close()
        await rag_client.close()
        if backend_client:
            await backend_client.close()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
