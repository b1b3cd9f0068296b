# Path: core/vector_store/memory_store.py
# Purpose: Provide the in-process, thread-safe memory store for caption embeddings.
# Layer: core/vector_store.
# Details: Implements insert/query/save/load with numpy cosine similarity over an append-only record list.

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Optional

import numpy as np

from core.errors import DimensionMismatchError
from core.models.domain import EmbeddingRecord, QueryMatch, QueryResult

from .base import VectorStore

logger = logging.getLogger(__name__)


class MemoryStore(VectorStore):
    """Append-only store of text memories searchable by cosine similarity.

    Inserts build the new record and the grown matrix outside the published
    state and swap them in under the lock, so queries always work on a
    complete snapshot. When ``autosave_path`` is set the store is written to
    disk after every insert, outside the record lock; a failed write is
    logged and the in-memory insert stands.
    """

    def __init__(self, dim: int, name: str = "memory", autosave_path: Optional[str] = None) -> None:
        self.dim = dim
        self.name = name
        self.autosave_path = autosave_path
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._records: List[EmbeddingRecord] = []
        self._matrix: np.ndarray = np.empty((0, dim), dtype=np.float32)

    def insert(self, text: str, vector: np.ndarray) -> EmbeddingRecord:
        """Append a record with the given text and embedding."""

        row = self._as_vector(vector)
        with self._lock:
            record = EmbeddingRecord(id=len(self._records), text=text, vector=row)
            matrix = np.vstack([self._matrix, row.reshape(1, -1)])
            records = self._records + [record]
            self._matrix, self._records = matrix, records
        logger.debug("Stored memory id=%s (%d total)", record.id, len(records))
        if self.autosave_path:
            self._autosave(self.autosave_path)
        return record

    def _autosave(self, path: str) -> None:
        # The record is already searchable; a failed write only affects the file on disk.
        try:
            self.save(path)
        except OSError:
            logger.exception("Failed to persist memory store to %s", path)

    def query(self, vector: np.ndarray, k: int) -> QueryResult:
        """Return the k most similar records using cosine similarity."""

        query = self._as_vector(vector)
        with self._lock:
            matrix, records = self._matrix, self._records
        if k <= 0 or not records:
            return QueryResult()

        row_norms = np.linalg.norm(matrix, axis=1)
        query_norm = float(np.linalg.norm(query))
        denominators = row_norms * query_norm
        scores = np.divide(
            matrix @ query,
            denominators,
            out=np.zeros(len(records), dtype=np.float32),
            where=denominators > 0,
        )
        # Stable sort on the negated scores keeps earlier inserts ahead on ties.
        ranked = np.argsort(-scores, kind="stable")[:k]
        matches = [
            QueryMatch(record=records[idx], score=float(scores[idx]), rank=rank)
            for rank, idx in enumerate(ranked)
        ]
        return QueryResult(matches=matches)

    def records(self) -> List[EmbeddingRecord]:
        with self._lock:
            return list(self._records)

    def save(self, path: str) -> None:
        """Persist records as ``[{"text": [str], "vector": [float, ...]}]`` JSON."""

        # Writers queue on the save lock; queries only contend for the snapshot below.
        with self._save_lock:
            with self._lock:
                records = self._records
            payload = [{"text": [record.text], "vector": record.vector.tolist()} for record in records]
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=target.name, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def load(self, path: str) -> None:
        """Load records previously saved by :meth:`save`."""

        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(f"Missing memory store file {path}.")

        payload = json.loads(target.read_text(encoding="utf-8"))
        records: List[EmbeddingRecord] = []
        rows: List[np.ndarray] = []
        for idx, item in enumerate(payload):
            text = item.get("text", "")
            if isinstance(text, list):
                text = " ".join(str(part) for part in text)
            row = self._as_vector(np.asarray(item.get("vector", []), dtype=np.float32))
            records.append(EmbeddingRecord(id=idx, text=str(text), vector=row))
            rows.append(row)

        matrix = np.vstack(rows) if rows else np.empty((0, self.dim), dtype=np.float32)
        with self._lock:
            self._records, self._matrix = records, matrix
        logger.info("Loaded %d memories from %s", len(records), path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _as_vector(self, vector: np.ndarray) -> np.ndarray:
        row = np.asarray(vector, dtype=np.float32).reshape(-1)
        if row.shape[0] != self.dim:
            raise DimensionMismatchError(
                f"Vector dimensionality {row.shape[0]} does not match store dimension {self.dim}."
            )
        return row
