"""In-process embeddings with sentence-transformers.

Used when the stored vectors were produced by a local model instead of the
hosted embedding API. The model is loaded on first use so that constructing
the engine never blocks on a download.
"""

from __future__ import annotations

import logging
import threading
from typing import Literal

import numpy as np
from sentence_transformers import SentenceTransformer

from mfsearch.config import DEFAULT_LOCAL_MODEL
from mfsearch.errors import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


def _check_onnx_providers() -> list[str]:
    """List available ONNX Runtime execution providers."""
    try:
        import onnxruntime as ort
        return ort.get_available_providers()
    except ImportError:
        return []


def detect_backend() -> Literal["torch", "onnx"]:
    """Prefer ONNX when a runtime is installed, otherwise PyTorch."""
    providers = _check_onnx_providers()
    if providers:
        logger.info("Using ONNX backend (providers: %s)", ", ".join(providers))
        return "onnx"
    logger.info("ONNX not available, using PyTorch backend")
    return "torch"


class LocalEmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for query embeddings."""

    def __init__(
        self,
        model_name: str = DEFAULT_LOCAL_MODEL,
        *,
        backend: Literal["torch", "onnx"] | None = None,
        device: str | None = None,
    ) -> None:
        self.model_name = model_name
        self.backend = backend
        self.device = device
        self._model: SentenceTransformer | None = None
        self._lock = threading.Lock()

    def _load_model(self) -> SentenceTransformer:
        with self._lock:
            if self._model is not None:
                return self._model
            backend = self.backend or detect_backend()
            try:
                self._model = SentenceTransformer(
                    self.model_name, backend=backend, device=self.device
                )
            except Exception as exc:
                if backend == "torch":
                    raise
                logger.warning(
                    "Failed to load model with backend '%s': %s. Falling back to PyTorch.",
                    backend,
                    exc,
                )
                self._model = SentenceTransformer(self.model_name, backend="torch", device=self.device)
            return self._model

    def embed(self, text: str) -> np.ndarray:
        try:
            model = self._load_model()
            vectors = model.encode(
                [text],
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except Exception as exc:
            logger.warning("Local embedding failed: %s", exc)
            raise EmbeddingUnavailableError(f"Local embedding model unavailable: {exc}") from exc
        return np.asarray(vectors[0], dtype="float32")
