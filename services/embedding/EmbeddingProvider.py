"""Process-wide embedding provider.

Created once at startup (API lifespan or ingestion CLI) and shared by
reference. The underlying embed client is booted lazily on first use; the
boot runs exactly once even when many requests arrive together.
"""

import asyncio
import math

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ProviderUnavailableError, ValidationError


def l2_normalize(vector: list[float]) -> list[float]:
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        return list(vector)
    return [v / norm for v in vector]


class EmbeddingProvider:
    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._client = embed_client
        self.dimensions = int(helper_config.get_number_val("EMBED_DIMENSIONS", default=384))
        self._boot_lock = asyncio.Lock()

    ##########################################
    ################ LIFECYCLE ###############
    ##########################################

    async def ensure_ready(self) -> None:
        """Boot the embed client once. Concurrent callers wait for the same boot."""
        if self._client.is_booted():
            return
        async with self._boot_lock:
            if self._client.is_booted():
                return
            self.logging.info(
                "Booting embedding client '%s' (model %s, %d dims)...",
                self._client.get_engine_name(), self._client.embed_model, self.dimensions,
            )
            await self._client.boot()
            await self._check_model_dimensions()

    async def _check_model_dimensions(self) -> None:
        """Warn early when the model output size differs from EMBED_DIMENSIONS.

        Vectors of the wrong size are still rejected per request in embed_many().
        """
        try:
            size = await self._client.do_fetch_embedding_vector_size()
        except ProviderUnavailableError as e:
            self.logging.warning("Could not verify the vector size of model %s: %s", self._client.embed_model, e.message)
            return
        if size != self.dimensions:
            self.logging.warning(
                "Embedding model %s produces %d dimensions but EMBED_DIMENSIONS is %d.",
                self._client.embed_model, size, self.dimensions,
            )

    async def close(self) -> None:
        await self._client.close()

    def is_ready(self) -> bool:
        return self._client.is_booted()

    ##########################################
    ################ EMBEDDING ###############
    ##########################################

    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text (str): Non-blank text.

        Returns:
            list[float]: L2-normalised vector of length EMBED_DIMENSIONS.

        Raises:
            ValidationError: If text is blank.
            ProviderUnavailableError: If the provider fails or returns a vector of the wrong size.
        """
        if not text or not text.strip():
            raise ValidationError("Cannot embed empty text.")
        vectors = await self.embed_many([text])
        return vectors[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in batches of EMBED_BATCH_SIZE, preserving order."""
        if not texts:
            return []
        await self.ensure_ready()

        batch_size = max(1, self._client.embed_batch_size)
        vectors: list[list[float]] = []
        for start in range(0, len(texts), batch_size):
            batch = texts[start:start + batch_size]
            for vector in await self._client.do_embed(batch):
                if len(vector) != self.dimensions:
                    self.logging.error(
                        "Embedding model returned %d dimensions, expected %d.", len(vector), self.dimensions
                    )
                    raise ProviderUnavailableError(
                        f"Embedding dimension mismatch: got {len(vector)}, expected {self.dimensions}."
                    )
                vectors.append(l2_normalize(vector))
        return vectors
