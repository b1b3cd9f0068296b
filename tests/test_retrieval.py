from __future__ import annotations

from typing import List, Tuple

import numpy as np
import pytest

from core.embedders.hash_embedder import HashEmbedder
from core.errors import EmbeddingError, SummarizationError
from core.search.pipeline import RetrievalCoordinator
from core.search.summarizer import NullSummarizer, Summarizer
from core.vector_store.memory_store import MemoryStore


class RecordingSummarizer(Summarizer):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: List[Tuple[str, str]] = []

    def summarize(self, query: str, context: str) -> str:
        self.calls.append((query, context))
        if self.fail:
            raise SummarizationError("endpoint unreachable")
        return f"answer to {query}"


class BrokenEmbedder(HashEmbedder):
    def embed_text(self, text: str) -> np.ndarray:
        raise RuntimeError("model crashed")


def fill(store: MemoryStore, embedder: HashEmbedder, texts: List[str]) -> None:
    for text in texts:
        store.insert(text, embedder.embed_text(text))


def test_empty_store_signals_no_matches(store: MemoryStore, embedder: HashEmbedder) -> None:
    summarizer = RecordingSummarizer()
    coordinator = RetrievalCoordinator(embedder, store, summarizer)

    result = coordinator.retrieve("where are my keys?")

    assert result.no_matches
    assert result.matches == []
    assert result.summary is None
    assert summarizer.calls == []
    coordinator.close()


def test_retrieve_builds_ranked_context_and_summarizes(store: MemoryStore, embedder: HashEmbedder) -> None:
    fill(store, embedder, ["T1 : keys on the shelf", "where are my keys?", "T3 : a dog"])
    summarizer = RecordingSummarizer()
    seen = []
    coordinator = RetrievalCoordinator(embedder, store, summarizer, k=2, on_retrieval_results=seen.append)

    result = coordinator.retrieve("  where are my keys?  ")

    assert not result.no_matches
    assert result.result.texts()[0] == "where are my keys?"
    assert result.context == "\n".join(result.result.texts())
    assert len(result.matches) == 2
    assert summarizer.calls == [("where are my keys?", result.context)]
    assert result.summary == "answer to where are my keys?"
    assert seen == [result.matches]
    coordinator.close()


def test_summarizer_failure_keeps_retrieved_memories(store: MemoryStore, embedder: HashEmbedder) -> None:
    fill(store, embedder, ["T1 : a laptop"])
    coordinator = RetrievalCoordinator(embedder, store, RecordingSummarizer(fail=True))

    result = coordinator.retrieve("laptop")

    assert result.result.texts() == ["T1 : a laptop"]
    assert result.summary is None
    assert result.summary_error == "endpoint unreachable"
    coordinator.close()


def test_embedding_failure_propagates_as_embedding_error(store: MemoryStore) -> None:
    coordinator = RetrievalCoordinator(BrokenEmbedder(dim=store.dim), store)
    with pytest.raises(EmbeddingError):
        coordinator.retrieve("anything")
    coordinator.close()


def test_blank_query_is_rejected(store: MemoryStore, embedder: HashEmbedder) -> None:
    coordinator = RetrievalCoordinator(embedder, store)
    with pytest.raises(ValueError):
        coordinator.retrieve("   ")
    coordinator.close()


def test_background_retrieval_returns_future(store: MemoryStore, embedder: HashEmbedder) -> None:
    fill(store, embedder, ["T1 : umbrella by the door"])
    coordinator = RetrievalCoordinator(embedder, store, NullSummarizer())

    result = coordinator.retrieve_in_background("T1 : umbrella by the door", k=1).result(timeout=5)

    assert result.result.texts() == ["T1 : umbrella by the door"]
    assert result.summary == result.context
    coordinator.close()
