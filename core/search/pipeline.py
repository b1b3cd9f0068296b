# Path: core/search/pipeline.py
# Purpose: Orchestrate memory retrieval by combining the embedder, memory store, and summarizer.
# Layer: core/search.
# Details: Embeds the query, ranks stored memories, and hands the assembled context to the summarizer.

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional

from core.embedders.base import Embedder
from core.errors import EmbeddingError, SummarizationError
from core.models.domain import QueryMatch, RetrievalResult
from core.vector_store.base import VectorStore

from .summarizer import Summarizer

logger = logging.getLogger(__name__)

ResultsCallback = Callable[[List[QueryMatch]], None]


class RetrievalCoordinator:
    """High-level service bridging spoken queries with the memory store and the summarizer."""

    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        summarizer: Optional[Summarizer] = None,
        k: int = 5,
        on_retrieval_results: Optional[ResultsCallback] = None,
    ) -> None:
        self.embedder = embedder
        self.vector_store = vector_store
        self.summarizer = summarizer
        self.k = k
        self.on_retrieval_results = on_retrieval_results
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="retrieval")

    def retrieve(self, query_text: str, k: Optional[int] = None) -> RetrievalResult:
        """
        Retrieve memories relevant to ``query_text`` and summarize them.

        External calls:
        - core/embedders/base.py::Embedder.embed_text - embeds the query in the caption embedding space.
        - core/vector_store/memory_store.py::MemoryStore.query - ranks stored memories.
        - core/search/summarizer.py::Summarizer.summarize - best-effort answer over the context.

        An empty store yields a result with ``no_matches`` set. Embedding
        failures propagate as :class:`EmbeddingError`; summarizer failures
        are recorded on the result.
        """

        query_text = (query_text or "").strip()
        if not query_text:
            raise ValueError("Query text must not be empty.")

        try:
            query_vector = self.embedder.embed_text(query_text)
        except EmbeddingError:
            raise
        except Exception as exc:  # noqa: BLE001 - normalize embedder failures
            raise EmbeddingError(f"Could not embed query: {exc}") from exc

        query_result = self.vector_store.query(query_vector, k=self.k if k is None else k)
        result = RetrievalResult(query=query_text, result=query_result)
        if query_result.is_empty:
            logger.info("No relevant memories for query %r", query_text)
            return result

        self._notify(result.matches)
        result.context = "\n".join(query_result.texts())
        if self.summarizer is not None:
            try:
                result.summary = self.summarizer.summarize(query_text, result.context)
            except SummarizationError as exc:
                logger.warning("Summarization failed: %s", exc)
                result.summary_error = str(exc)
        return result

    def retrieve_in_background(self, query_text: str, k: Optional[int] = None) -> Future:
        """Run :meth:`retrieve` on the retrieval worker and return its future."""

        return self._executor.submit(self.retrieve, query_text, k)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _notify(self, matches: List[QueryMatch]) -> None:
        if self.on_retrieval_results is None:
            return
        try:
            self.on_retrieval_results(matches)
        except Exception:  # noqa: BLE001 - UI sink failures do not void the retrieval
            logger.exception("Retrieval results listener failed")
