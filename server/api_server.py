"""FastAPI application entry point for kb_ai_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperLanguage import HelperLanguage
from shared.helper.HelperPrompts import HelperPrompts
from shared.clients.backend.BackendClientInterface import BackendClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.backend.BackendClientManager import BackendClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.websearch.WebSearchClientManager import WebSearchClientManager
from shared.models.errors import (
    ConfigurationError,
    DelegationTimeoutError,
    KBError,
    ProviderUnavailableError,
    ValidationError,
)
from services.chat.ConcurrencyGate import ConcurrencyGate
from services.chat.Orchestrator import Orchestrator
from services.chat.SessionStore import SessionStore
from services.chat.ToolExecutor import ToolExecutor
from services.chunking.SemanticChunker import SemanticChunker
from services.embedding.EmbeddingProvider import EmbeddingProvider
from services.kb_ingest.IngestService import IngestService
from services.kb_ingest.TextExtractor import TextExtractor
from services.retrieval.HybridRetriever import HybridRetriever
from services.tools.ToolRegistry import build_default_registry
from server.models.responses import GateStatus, HealthResponse
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router
from server.routers.RetrievalRouter import router as retrieval_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")
SERVICE_NAME = "kb_ai_bridge"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    helper_config = HelperConfig(logger=logging)
    app.state.helper_config = helper_config

    # fail fast on missing keys and prompt files
    helper_config.get_string_val("API_SERVER_API_KEY")
    prompts = HelperPrompts(helper_config=helper_config)

    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    backend_client = BackendClientManager(helper_config=helper_config).get_client()
    websearch_client = WebSearchClientManager(helper_config=helper_config).get_client()
    clients = [rag_client, llm_client, backend_client, websearch_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.", color="green")

    await check_connections(rag_client, llm_client, backend_client)

    # embed client boots lazily on first use
    embedding_provider = EmbeddingProvider(helper_config=helper_config, embed_client=embed_client)
    await rag_client.do_ensure_index(embedding_provider.dimensions)

    retriever = HybridRetriever(helper_config=helper_config, rag_client=rag_client, embedding_provider=embedding_provider)
    registry = build_default_registry(helper_config, retriever, backend_client, websearch_client)
    session_store = SessionStore(helper_config=helper_config)
    gate = ConcurrencyGate(capacity=int(helper_config.get_number_val("MAX_CONCURRENT_REQUESTS", default=5)))

    app.state.rag_client = rag_client
    app.state.embedding_provider = embedding_provider
    app.state.retriever = retriever
    app.state.session_store = session_store
    app.state.gate = gate
    app.state.orchestrator = Orchestrator(
        helper_config=helper_config,
        llm_client=llm_client,
        executor=ToolExecutor(helper_config=helper_config, llm_client=llm_client, registry=registry, prompts=prompts),
        sessions=session_store,
        gate=gate,
        prompts=prompts,
    )
    app.state.ingest_service = IngestService(
        helper_config=helper_config,
        rag_client=rag_client,
        embedding_provider=embedding_provider,
        chunker=SemanticChunker(helper_config=helper_config),
        extractor=TextExtractor(helper_config=helper_config),
        backend_client=backend_client,
    )
    logging.info("Registered %d tools: %s", len(registry.names()), ", ".join(registry.names()))

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    await embedding_provider.close()
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title=SERVICE_NAME,
    description=(
        "Knowledge-base middleware for a property rental platform. Documents are chunked by "
        "section, embedded and indexed into Elasticsearch; questions are answered through hybrid "
        "retrieval and a tool-using conversational agent."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(retrieval_router)
app.include_router(chat_router)
app.include_router(document_router)


##########################################
############ ERROR HANDLERS ##############
##########################################

def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(400, "validation_error", exc.user_message or exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
    return _error(400, "validation_error", details)


@app.exception_handler(ProviderUnavailableError)
async def provider_error_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    logging.error("Provider unavailable on %s: %s", request.url.path, exc.message)
    return _error(503, "provider_unavailable", exc.user_message or HelperLanguage.message("provider_unavailable"))


@app.exception_handler(DelegationTimeoutError)
async def timeout_error_handler(request: Request, exc: DelegationTimeoutError) -> JSONResponse:
    return _error(504, "timeout", exc.user_message or HelperLanguage.message("timeout"))


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logging.error("Configuration error on %s: %s", request.url.path, exc.message)
    return _error(500, "configuration_error", HelperLanguage.message("configuration"))


@app.exception_handler(KBError)
async def kb_error_handler(request: Request, exc: KBError) -> JSONResponse:
    logging.error("Unhandled error on %s: %s", request.url.path, exc.message)
    return _error(500, "internal_error", exc.user_message or HelperLanguage.message("generic"))


##########################################
############### ENDPOINTS ################
##########################################

@app.get("/health")
async def health(request: Request) -> HealthResponse:
    """Liveness plus search engine reachability, embedder state, session count and gate load."""
    rag_client: RAGClientInterface = request.app.state.rag_client
    try:
        reachable = (await rag_client.do_healthcheck()).is_success
    except ProviderUnavailableError:
        reachable = False
    return HealthResponse(
        status="ok" if reachable else "degraded",
        service=SERVICE_NAME,
        version=app_version,
        search_engine=f"{rag_client.get_engine_name()} ({'connected' if reachable else 'unreachable'})",
        embedding_ready=request.app.state.embedding_provider.is_ready(),
        sessions=request.app.state.session_store.session_count(),
        gate=GateStatus(**request.app.state.gate.snapshot()),
    )


@app.get("/")
async def root() -> dict:
    return {
        "service": SERVICE_NAME,
        "version": app_version,
        "endpoints": {
            "health": "GET /health",
            "retrieve": "POST /api/rag/retrieve",
            "search": "POST /api/rag/search",
            "chat": "POST /api/rag/chat",
            "history": "GET /api/rag/chat/history/{session_id}",
            "clear_session": "DELETE /api/rag/chat/{session_id}",
            "process_document": "POST /api/documents/process",
            "document_status": "GET /api/documents/{document_id}",
            "delete_document": "DELETE /api/documents/{document_id}",
        },
    }


async def check_connections(
    rag_client: RAGClientInterface,
    llm_client: LLMClientInterface,
    backend_client: BackendClientInterface,
) -> None:
    """Check connectivity to the configured backends on startup.

    The search engine is fatal: nothing can be retrieved or ingested without it.
    LLM and property backend failures are logged; chat will fail later, but
    retrieval stays available.

    Raises:
        ProviderUnavailableError: If the search engine is not reachable.
    """
    result = await rag_client.do_healthcheck()
    if not result.is_success:
        raise ProviderUnavailableError(
            f"RAG client '{rag_client.__class__.__name__}' is not reachable "
            f"(status {result.status_code}). Cannot serve queries."
        )

    for client in (llm_client, backend_client):
        try:
            result = await client.do_healthcheck()
        except ProviderUnavailableError as e:
            logging.warning("%s client '%s' is not reachable: %s", client.get_client_type(), client.__class__.__name__, e.message)
            continue
        if not result.is_success:
            logging.warning(
                "%s client '%s' is not reachable (status %d). Chat may fail.",
                client.get_client_type(), client.__class__.__name__, result.status_code,
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting kb_ai_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
        color="cyan",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
