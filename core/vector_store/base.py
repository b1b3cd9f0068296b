# Path: core/vector_store/base.py
# Purpose: Define the VectorStore interface for storing and searching memory embeddings.
# Layer: core/vector_store.
# Details: Provides abstract methods for append-only inserts, k-nearest queries, and persistence.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import numpy as np

from core.models.domain import EmbeddingRecord, QueryResult


class VectorStore(ABC):
    """Abstract base class for pluggable memory store backends."""

    name: str
    dim: int

    @abstractmethod
    def insert(self, text: str, vector: np.ndarray) -> EmbeddingRecord:
        """Append a record; concurrent readers see either the old or the new state."""

    @abstractmethod
    def query(self, vector: np.ndarray, k: int) -> QueryResult:
        """Return up to ``k`` records ranked by similarity, earliest insert first on ties."""

    @abstractmethod
    def records(self) -> List[EmbeddingRecord]:
        """Return a snapshot of all records in insertion order."""

    @abstractmethod
    def save(self, path: str) -> None:
        """Persist the store to disk."""

    @abstractmethod
    def load(self, path: str) -> None:
        """Replace the store contents with a serialized store from disk."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of stored records."""
