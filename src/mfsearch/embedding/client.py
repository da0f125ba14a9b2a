"""HTTP embedding client for OpenAI-compatible ``/embeddings`` endpoints."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
import numpy as np

from mfsearch.config import AppConfig
from mfsearch.errors import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    def embed(self, text: str) -> np.ndarray: ...


class OpenAIEmbeddingClient:
    """Turns query text into a vector with a single bounded-timeout request.

    There is no retry: a failed call surfaces as ``EmbeddingUnavailableError``
    and the calling tool decides whether to fall back to text search.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        if self.base_url.endswith("/embeddings"):
            return self.base_url
        return f"{self.base_url}/embeddings"

    def embed(self, text: str) -> np.ndarray:
        if not self.api_key:
            raise EmbeddingUnavailableError(
                "Embedding API key not configured. Set OPENAI_API_KEY to enable semantic search."
            )

        payload = {"model": self.model, "input": text, "encoding_format": "float"}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            with httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
                response = client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Embedding request failed: %s", exc)
            raise EmbeddingUnavailableError(f"Embedding request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning("Embedding endpoint returned %s", response.status_code)
            raise EmbeddingUnavailableError(
                f"Embedding API error: {response.status_code} - {response.text[:200]}"
            )

        try:
            data: Any = response.json()
            vector = data["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise EmbeddingUnavailableError("Unexpected embedding response schema") from exc

        logger.debug("Generated embedding with %d dimensions", len(vector))
        return np.asarray(vector, dtype="float32")


def build_embedder(config: AppConfig) -> Embedder:
    """Return the embedding client selected by ``config.embedding_provider``."""
    if config.embedding_provider == "local":
        from mfsearch.embedding.encoder import LocalEmbeddingModel

        return LocalEmbeddingModel(config.embedding_model)
    return OpenAIEmbeddingClient(
        api_key=config.embedding_api_key,
        model=config.embedding_model,
        base_url=config.embedding_url,
        timeout=config.embedding_timeout,
    )
