# Path: core/embedders/sentence_transformer_embedder.py
# Purpose: Provide the production text embedder backed by sentence-transformers.
# Layer: core/embedders.
# Details: Lazily loads a MiniLM-style model and returns mean-pooled, normalized float32 vectors.

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional

import numpy as np

from core.errors import EmbeddingError

from .base import Embedder

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder(Embedder):
    """Text embedder wrapping :class:`sentence_transformers.SentenceTransformer`."""

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        device: str = "cpu",
        dim: int = 384,
        name: str = "sentence_transformer",
    ) -> None:
        self.model_name = model_name
        self.device = device
        self.dim = dim
        self.name = name
        self._model = None
        self._load_lock = threading.Lock()

    def _get_model(self):
        with self._load_lock:
            if self._model is None:
                try:
                    from sentence_transformers import SentenceTransformer
                except ImportError as exc:  # pragma: no cover - runtime dependency
                    raise EmbeddingError("sentence-transformers package is required for this embedder.") from exc
                logger.info("Loading embedding model %s on %s", self.model_name, self.device)
                try:
                    self._model = SentenceTransformer(self.model_name, device=self.device)
                except Exception as exc:  # noqa: BLE001 - model download / init failure
                    raise EmbeddingError(f"Could not load embedding model {self.model_name}: {exc}") from exc
            return self._model

    def embed_text(self, text: str) -> np.ndarray:
        return self.embed_texts([text])[0]

    def embed_texts(self, texts: Iterable[str]) -> List[np.ndarray]:
        batch = list(texts)
        if not batch:
            return []
        model = self._get_model()
        try:
            matrix: Optional[np.ndarray] = model.encode(batch, convert_to_numpy=True, normalize_embeddings=True)
        except Exception as exc:  # noqa: BLE001 - surface any encoder failure uniformly
            raise EmbeddingError(f"Embedding failed: {exc}") from exc

        matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float32))
        if matrix.shape[1] != self.dim:
            raise EmbeddingError(
                f"Embedding model {self.model_name} produced dimension {matrix.shape[1]}, expected {self.dim}."
            )
        return [self._normalize(row) for row in matrix]
