import asyncio
import logging
import os

os.environ.setdefault("LOG_TO_FILE", "false")

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperPrompts import HelperPrompts
from shared.models.chat import ChatCompletion

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "prompts")


class FakeEmbedClient:
    """Embed client double producing deterministic vectors of a fixed size."""

    def __init__(self, dimensions: int = 4, batch_size: int = 32):
        self.embed_model = "fake-embed"
        self.embed_batch_size = batch_size
        self.dimensions = dimensions
        self.booted = False
        self.boot_calls = 0
        self.batches: list[list[str]] = []

    def is_booted(self) -> bool:
        return self.booted

    def get_engine_name(self) -> str:
        return "fake"

    async def boot(self) -> None:
        self.boot_calls += 1
        await asyncio.sleep(0)
        self.booted = True

    async def close(self) -> None:
        self.booted = False

    async def do_fetch_embedding_vector_size(self) -> int:
        return self.dimensions

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        self.batches.append(list(texts))
        return [[float(len(text))] + [1.0] * (self.dimensions - 1) for text in texts]


@pytest.fixture
def env(monkeypatch):
    """Baseline environment of a test run; tests override single keys with monkeypatch.setenv."""
    values = {
        "PROMPTS_DIR": PROMPTS_DIR,
        "API_SERVER_API_KEY": "test-key",
        "EMBED_DIMENSIONS": "4",
        "RAG_ELASTICSEARCH_BASE_URL": "http://es.test:9200",
        "RAG_ELASTICSEARCH_INDEX": "rag_chunks",
        "LLM_CHAT_MODEL": "test-model",
        "LLM_OLLAMA_BASE_URL": "http://ollama.test:11434",
        "EMBED_OLLAMA_BASE_URL": "http://ollama.test:11434",
        "BACKEND_REST_BASE_URL": "http://backend.test",
        "BACKEND_REST_API_KEY": "backend-key",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


@pytest.fixture
def helper_config(env):
    return HelperConfig(logger=logging.getLogger("kb_ai_bridge.tests"))


@pytest.fixture
def prompts(helper_config):
    return HelperPrompts(helper_config=helper_config)


@pytest.fixture
def embed_client():
    return FakeEmbedClient()


@pytest.fixture
def llm_client():
    """LLM client double; set do_chat.return_value or side_effect per test."""
    client = MagicMock()
    client.do_chat = AsyncMock(return_value=ChatCompletion(content="ok"))
    return client


@pytest.fixture
def backend_client():
    client = MagicMock()
    client.do_fetch_property = AsyncMock(return_value=None)
    client.do_fetch_owner = AsyncMock(return_value=None)
    client.do_search_properties = AsyncMock(return_value=[])
    client.do_search_nearby = AsyncMock(return_value=[])
    client.do_calculate_distance = AsyncMock(return_value=None)
    client.do_update_document_status = AsyncMock()
    client.do_download = AsyncMock()
    return client


def _json_transport(routes: dict, calls: list | None = None) -> httpx.MockTransport:
    """MockTransport answering "METHOD /path" keys with (status, json body) tuples.

    Every received request is appended to calls when given.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        key = f"{request.method} {request.url.path}"
        if key not in routes:
            return httpx.Response(404, json={"error": f"no route for {key}"})
        status, body = routes[key]
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def json_transport():
    return _json_transport
