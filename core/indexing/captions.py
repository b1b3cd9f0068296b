# Path: core/indexing/captions.py
# Purpose: Turn completed captions and user notes into stored memories.
# Layer: core/indexing.
# Details: Embeds and inserts on a single background worker so store order follows caption completion order.

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from core.embedders.base import Embedder
from core.errors import EmbeddingError
from core.models.domain import CaptionRecord, EmbeddingRecord
from core.vector_store.base import VectorStore

logger = logging.getLogger(__name__)


class CaptionRecorder:
    """Persist captions into the memory store without blocking the capture loop."""

    def __init__(self, embedder: Embedder, vector_store: VectorStore) -> None:
        if embedder.dim != vector_store.dim:
            raise ValueError(f"Embedder dimension {embedder.dim} does not match store dimension {vector_store.dim}.")
        self.embedder = embedder
        self.vector_store = vector_store
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="caption-recorder")
        self._last: Optional[Future] = None

    def record(self, caption: CaptionRecord) -> Future:
        """Queue a completed caption; the future resolves to the stored record, or None if it was dropped and logged."""

        return self._submit(caption.memory_text())

    def record_note(self, text: str) -> Future:
        """Queue a free-text user note, stored the same way as captions."""

        return self._submit(CaptionRecord.now(text).memory_text())

    def store_now(self, text: str) -> EmbeddingRecord:
        """Embed and insert ``text`` on the calling thread; raises :class:`EmbeddingError` on failure."""

        vector = self.embedder.embed_text(text)
        return self.vector_store.insert(text, vector)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every queued insert has finished."""

        last = self._last
        if last is not None:
            last.exception(timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _submit(self, text: str) -> Future:
        future = self._executor.submit(self._store, text)
        self._last = future
        return future

    def _store(self, text: str) -> Optional[EmbeddingRecord]:
        try:
            record = self.store_now(text)
        except EmbeddingError as exc:
            # Captions keep coming; a failed embedding only loses this one memory.
            logger.warning("Dropping memory, embedding failed: %s", exc)
            return None
        except Exception:  # noqa: BLE001 - nobody waits on caption futures, so log here
            logger.exception("Dropping memory, insert failed")
            return None
        logger.debug("Recorded memory %s: %s", record.id, text)
        return record
