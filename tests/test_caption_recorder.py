from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest

from core.embedders.hash_embedder import HashEmbedder
from core.errors import EmbeddingError
from core.indexing.captions import CaptionRecorder
from core.indexing.index_builder import NoteIngestor
from core.models.domain import CaptionRecord
from core.vector_store.memory_store import MemoryStore


class FlakyEmbedder(HashEmbedder):
    def embed_text(self, text: str) -> np.ndarray:
        if "unembeddable" in text:
            raise EmbeddingError("tokenizer rejected input")
        return super().embed_text(text)


def test_captions_are_stored_in_completion_order(store: MemoryStore, embedder: HashEmbedder) -> None:
    recorder = CaptionRecorder(embedder, store)
    captions = [CaptionRecord(timestamp=f"2026-01-01T10:00:0{i}", text=f"frame {i}") for i in range(5)]
    for caption in captions:
        recorder.record(caption)
    recorder.flush(timeout=5)
    recorder.close()

    assert [record.text for record in store.records()] == [caption.memory_text() for caption in captions]
    assert store.records()[0].text == "2026-01-01T10:00:00 : frame 0"


def test_embedding_failure_drops_only_that_caption(store: MemoryStore) -> None:
    recorder = CaptionRecorder(FlakyEmbedder(dim=store.dim), store)
    dropped = recorder.record(CaptionRecord.now("unembeddable glyphs"))
    kept = recorder.record(CaptionRecord.now("a chair"))

    assert dropped.result(timeout=5) is None
    assert kept.result(timeout=5).text.endswith(" : a chair")
    assert len(store) == 1
    recorder.close()


class WrongSizeEmbedder(HashEmbedder):
    def embed_text(self, text: str) -> np.ndarray:
        return np.ones(3, dtype=np.float32)


def test_unwritable_autosave_keeps_caption_and_logs(tmp_path: Path, embedder: HashEmbedder, caplog) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    store = MemoryStore(dim=embedder.dim, autosave_path=str(blocker / "memories.json"))
    recorder = CaptionRecorder(embedder, store)
    caplog.set_level(logging.WARNING)

    record = recorder.record(CaptionRecord.now("a plant on the sill")).result(timeout=5)
    recorder.close()

    assert record is not None
    assert record.text.endswith(" : a plant on the sill")
    assert len(store) == 1
    assert any(
        entry.levelno >= logging.ERROR and "Failed to persist" in entry.getMessage() for entry in caplog.records
    )


def test_unexpected_insert_failure_is_logged_and_dropped(store: MemoryStore, caplog) -> None:
    recorder = CaptionRecorder(WrongSizeEmbedder(dim=store.dim), store)
    caplog.set_level(logging.WARNING)

    result = recorder.record(CaptionRecord.now("a door")).result(timeout=5)
    recorder.close()

    assert result is None
    assert len(store) == 0
    failures = [entry for entry in caplog.records if "insert failed" in entry.getMessage()]
    assert failures and failures[0].exc_info is not None


def test_notes_are_timestamped(store: MemoryStore, embedder: HashEmbedder) -> None:
    recorder = CaptionRecorder(embedder, store)
    record = recorder.record_note("I left my keys in the blue bowl").result(timeout=5)
    recorder.close()

    timestamp, _, text = record.text.partition(" : ")
    assert text == "I left my keys in the blue bowl"
    assert timestamp[:4].isdigit()


def test_dimension_mismatch_is_rejected_up_front() -> None:
    with pytest.raises(ValueError):
        CaptionRecorder(HashEmbedder(dim=8), MemoryStore(dim=16))


def test_note_ingestor_batches_in_order(store: MemoryStore, embedder: HashEmbedder) -> None:
    ingestor = NoteIngestor(embedder, store, batch_size=2)
    stored = ingestor.ingest(["milk is in the fridge", "", "  ", "passport in the drawer", "bike is locked"],
                             timestamped=False, show_progress=False)

    assert [record.text for record in stored] == [
        "milk is in the fridge",
        "passport in the drawer",
        "bike is locked",
    ]
    assert len(store) == 3
