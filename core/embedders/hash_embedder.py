# Path: core/embedders/hash_embedder.py
# Purpose: Provide a deterministic, dependency-light text embedder.
# Layer: core/embedders.
# Details: Expands a SHA-256 digest into a fixed-size vector; used offline and in tests.

from __future__ import annotations

import hashlib

import numpy as np

from .base import Embedder


class HashEmbedder(Embedder):
    """Embedder that maps identical text to identical vectors without loading a model.

    Vectors carry no semantic similarity; only exact text matches line up.
    """

    def __init__(self, dim: int = 384, name: str = "hash") -> None:
        self.dim = dim
        self.name = name

    def embed_text(self, text: str) -> np.ndarray:
        """Generate a deterministic text embedding based on hashing."""

        hash_bytes = hashlib.sha256(text.encode("utf-8")).digest()
        expanded = np.frombuffer(hash_bytes * (self.dim // len(hash_bytes) + 1), dtype=np.uint8)
        # Center around zero so unrelated texts are not all strongly correlated.
        vector = expanded[: self.dim].astype(np.float32) - 127.5
        return self._normalize(vector)
