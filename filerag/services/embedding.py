"""Embedding strategies — remote via LiteLLM or local via sentence-transformers.

Both satisfy the ``Embedder`` protocol; callers only ever use ``embed``.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Protocol, runtime_checkable

import litellm
from litellm import aembedding

from filerag.core.config import get_settings
from filerag.core.errors import EmbeddingProviderError
from filerag.models.workspace import EmbeddingsProvider

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_DIMENSIONS = 1536
MAX_BATCH_SIZE = 128

# Known dimensions for common remote models
_REMOTE_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

# Transient provider failures worth another attempt
_TRANSIENT_ERRORS = (
    litellm.Timeout,
    litellm.RateLimitError,
    litellm.APIConnectionError,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
)


@runtime_checkable
class Embedder(Protocol):
    """Anything that maps text to vectors in one fixed embedding space."""

    @property
    def model_name(self) -> str:
        ...

    @property
    def dimensions(self) -> int:
        ...

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per input text, in input order."""
        ...


class RemoteEmbedder:
    """Provider-agnostic remote embeddings through LiteLLM.

    Each batch call is bounded by ``timeout`` seconds and retried up to
    ``max_retries`` times on transient errors, sleeping
    ``backoff * 2 ** attempt`` seconds in between.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff: float = 0.5,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return _REMOTE_DIMENSIONS.get(self._model, DEFAULT_EMBEDDING_DIMENSIONS)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        for i in range(0, len(texts), MAX_BATCH_SIZE):
            batch = texts[i : i + MAX_BATCH_SIZE]
            all_embeddings.extend(await self._embed_batch(batch))
        return all_embeddings

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        kwargs: dict = {"model": self._model, "input": batch, "timeout": self.timeout}
        if self._api_key:
            kwargs["api_key"] = self._api_key

        attempt = 0
        while True:
            try:
                response = await aembedding(**kwargs)
                break
            except _TRANSIENT_ERRORS as exc:
                if attempt >= self.max_retries:
                    raise EmbeddingProviderError(
                        f"{self._model}: giving up after {attempt + 1} attempts: {exc}"
                    ) from exc
                delay = self.backoff * 2**attempt
                logger.warning(
                    "Embedding call to %s failed (%s), retrying in %.2fs",
                    self._model, type(exc).__name__, delay,
                )
                await asyncio.sleep(delay)
                attempt += 1
            except Exception as exc:
                raise EmbeddingProviderError(
                    f"{self._model}: {exc}", retryable=False
                ) from exc

        try:
            vectors = [list(item["embedding"]) for item in response.data]
        except (KeyError, TypeError, AttributeError) as exc:
            raise EmbeddingProviderError(f"{self._model}: malformed response") from exc
        if len(vectors) != len(batch):
            raise EmbeddingProviderError(
                f"{self._model}: expected {len(batch)} vectors, got {len(vectors)}"
            )
        return vectors


@lru_cache(maxsize=4)
def _load_sentence_transformer(model_name: str):
    from sentence_transformers import SentenceTransformer

    logger.info("Loading local embedding model %s", model_name)
    return SentenceTransformer(model_name)


class LocalEmbedder:
    """In-process embeddings with a sentence-transformers model.

    The model is loaded on first use and encoding runs in a worker thread
    so the event loop is not blocked. Vectors are L2-normalized.
    """

    def __init__(self, model: str) -> None:
        self._model = model

    @property
    def model(self):
        """Lazy-load the model on first access."""
        try:
            return _load_sentence_transformer(self._model)
        except Exception as exc:
            raise EmbeddingProviderError(
                f"Could not load local model {self._model}: {exc}", retryable=False
            ) from exc

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        model = self.model
        try:
            embeddings = await asyncio.to_thread(
                model.encode,
                texts,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except Exception as exc:
            raise EmbeddingProviderError(
                f"Local model {self._model} failed: {exc}", retryable=False
            ) from exc
        return [[float(x) for x in row] for row in embeddings]


async def embed_query(embedder: Embedder, text: str) -> list[float]:
    """Embed a single query string."""
    vectors = await embedder.embed([text])
    if len(vectors) != 1:
        raise EmbeddingProviderError(f"{embedder.model_name}: no vector returned for query")
    return vectors[0]


def get_embedder(provider: EmbeddingsProvider | str | None = None) -> Embedder:
    """Return the embedding strategy configured for ``provider``."""
    settings = get_settings()
    provider = EmbeddingsProvider(provider or settings.default_embeddings_provider)
    if provider is EmbeddingsProvider.LOCAL:
        return LocalEmbedder(settings.local_embedding_model)
    return RemoteEmbedder(
        settings.openai_embedding_model,
        timeout=settings.embedding_timeout,
        max_retries=settings.embedding_max_retries,
        backoff=settings.embedding_retry_backoff,
    )
