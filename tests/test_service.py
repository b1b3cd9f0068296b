from __future__ import annotations

import re
from pathlib import Path

import pytest
from PIL import Image

from config import AppSettings
from core.capture.frame_source import StaticFrameSource
from core.embedders.hash_embedder import HashEmbedder
from core.models.domain import EngineState
from core.search.summarizer import NullSummarizer
from core.service import LiveCaptionService, build_memory_store, build_service
from core.vector_store.memory_store import MemoryStore
from gui.view_models import CaptioningViewModel

from conftest import DIM, FakeBackend, wait_for


@pytest.fixture
def service_parts():
    backend = FakeBackend(reply="a red mug on the table")
    view = CaptioningViewModel()
    settings = AppSettings.model_validate({"capture": {"frame_capture_delay": 0.01}})
    service = build_service(
        settings,
        frame_source=StaticFrameSource(Image.new("RGB", (32, 32), (10, 200, 30))),
        backend=backend,
        embedder=HashEmbedder(dim=DIM),
        vector_store=MemoryStore(dim=DIM),
        summarizer=NullSummarizer(),
        sink=view,
    )
    yield service, backend, view
    service.close()


def test_caption_loop_stores_timestamped_memories(service_parts) -> None:
    service, backend, view = service_parts
    assert isinstance(service, LiveCaptionService)
    service.load_model()
    service.scheduler.start()

    assert wait_for(lambda: len(service.vector_store) >= 2)
    service.scheduler.stop()
    service.recorder.flush(timeout=2.0)

    text = service.vector_store.records()[0].text
    assert re.match(r"^\d{4}-\d{2}-\d{2}T[\d:.]+\+00:00 : a red mug on the table$", text)
    assert view.caption == "a red mug on the table"
    assert backend.calls[0][1][-1]["content"].startswith("<image>")


def test_ask_returns_stored_caption_with_no_summary_endpoint(service_parts) -> None:
    service, _, view = service_parts
    service.recorder.store_now("a red mug on the table")

    result = service.ask("a red mug on the table")

    assert not result.no_matches
    assert result.context == "a red mug on the table"
    assert result.summary == "a red mug on the table"
    assert view.snapshot()["retrieval_results"] == ["a red mug on the table"]


def test_status_reports_engine_and_memory_count(service_parts) -> None:
    service, _, _ = service_parts
    status = service.status()
    assert status["engine_state"] == EngineState.UNLOADED.value
    assert status["running"] is False
    assert status["memory_count"] == 0

    service.load_model_in_background().result(timeout=2.0)
    assert service.status()["engine_state"] == EngineState.READY.value


def test_build_memory_store_restores_saved_index(tmp_path: Path) -> None:
    index_path = tmp_path / "memories.json"
    embedder = HashEmbedder(dim=DIM)
    original = MemoryStore(dim=DIM)
    original.insert("T1 : keys by the door", embedder.embed_text("T1 : keys by the door"))
    original.save(str(index_path))

    settings = AppSettings.model_validate({"vector_store": {"dim": DIM, "index_path": str(index_path)}})
    restored = build_memory_store(settings)

    assert len(restored) == 1
    assert restored.records()[0].text == "T1 : keys by the door"
