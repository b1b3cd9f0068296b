# Path: core/indexing/index_builder.py
# Purpose: Bulk-load free-text notes into the memory store.
# Layer: core/indexing.
# Details: Coordinates batched embedder calls and store inserts with progress reporting.

from __future__ import annotations

from typing import Iterable, List

from tqdm import tqdm

from core.embedders.base import Embedder
from core.models.domain import CaptionRecord, EmbeddingRecord
from core.vector_store.base import VectorStore


class NoteIngestor:
    """Batch process notes to populate the configured memory store."""

    def __init__(self, embedder: Embedder, vector_store: VectorStore, batch_size: int = 32) -> None:
        self.embedder = embedder
        self.vector_store = vector_store
        self.batch_size = batch_size

    def ingest(self, notes: Iterable[str], timestamped: bool = True, show_progress: bool = True) -> List[EmbeddingRecord]:
        """
        Embed notes and push them into the memory store in input order.

        External calls:
        - core/embedders/base.py::Embedder.embed_texts - create embeddings for each batch.
        - core/vector_store/memory_store.py::MemoryStore.insert - append vectors to the store.
        """

        texts = [note.strip() for note in notes if note and note.strip()]
        if timestamped:
            texts = [CaptionRecord.now(text).memory_text() for text in texts]

        stored: List[EmbeddingRecord] = []
        with tqdm(total=len(texts), desc="Ingesting notes", unit="note", disable=not show_progress) as progress:
            for start in range(0, len(texts), self.batch_size):
                batch = texts[start : start + self.batch_size]
                vectors = self.embedder.embed_texts(batch)
                for text, vector in zip(batch, vectors):
                    stored.append(self.vector_store.insert(text, vector))
                progress.update(len(batch))
        return stored
