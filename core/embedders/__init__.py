# Path: core/embedders/__init__.py
# Purpose: Package initializer for embedder implementations and interfaces.
# Layer: core/embedders.
# Details: Exposes base interface, reference implementations, and a settings-driven factory.

from .base import Embedder
from .factory import build_embedder
from .hash_embedder import HashEmbedder
from .sentence_transformer_embedder import SentenceTransformerEmbedder

__all__ = ["Embedder", "HashEmbedder", "SentenceTransformerEmbedder", "build_embedder"]
