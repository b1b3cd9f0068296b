# Path: core/embedders/factory.py
# Purpose: Build the configured embedder implementation.
# Layer: core/embedders.
# Details: Maps EmbedderSettings.name onto a concrete Embedder class.

from __future__ import annotations

from config import EmbedderSettings

from .base import Embedder
from .hash_embedder import HashEmbedder
from .sentence_transformer_embedder import SentenceTransformerEmbedder


def build_embedder(settings: EmbedderSettings) -> Embedder:
    """Instantiate the embedder named in ``settings``."""

    if settings.name == "sentence_transformer":
        return SentenceTransformerEmbedder(model_name=settings.model_name, device=settings.device, dim=settings.dim)
    if settings.name == "hash":
        return HashEmbedder(dim=settings.dim)
    raise ValueError(f"Unknown embedder: {settings.name}")
