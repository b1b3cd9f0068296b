# Path: core/embedders/base.py
# Purpose: Define the Embedder interface for caption, note, and query text embeddings.
# Layer: core/embedders.
# Details: One embedder instance must serve both the caption insert path and the query path.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List

import numpy as np


class Embedder(ABC):
    """Abstract base class for all text embedders used by the memory pipeline."""

    name: str
    dim: int

    @abstractmethod
    def embed_text(self, text: str) -> np.ndarray:
        """Return a unit-length embedding of ``dim`` float32 values for the given text."""

    def embed_texts(self, texts: Iterable[str]) -> List[np.ndarray]:
        """Embed several texts; implementations may override with a batched call."""

        return [self.embed_text(text) for text in texts]

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        """Normalize embedding vectors to unit length to simplify similarity comparisons."""

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.astype(np.float32)
        return (vector / norm).astype(np.float32)
