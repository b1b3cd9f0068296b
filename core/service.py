# Path: core/service.py
# Purpose: Assemble the capture, memory, and retrieval services into one application object.
# Layer: core.
# Details: Wires engine, frame source, scheduler, recorder, store, and retrieval coordinator from AppSettings.

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from config import AppSettings
from core.capture.frame_source import FrameSource, OpenCVFrameSource
from core.capture.scheduler import CaptureScheduler
from core.embedders import Embedder, build_embedder
from core.indexing.captions import CaptionRecorder
from core.inference.base import ProgressCallback, VisionLanguageBackend
from core.inference.engine import InferenceEngine
from core.inference.transformers_backend import TransformersBackend
from core.models.domain import QueryMatch, RetrievalResult
from core.search.pipeline import RetrievalCoordinator
from core.search.summarizer import Summarizer, build_summarizer
from core.vector_store.base import VectorStore
from core.vector_store.memory_store import MemoryStore

logger = logging.getLogger(__name__)


class UISink(Protocol):
    """Fire-and-forget callbacks implemented by the presentation layer."""

    def on_caption_update(self, text: str) -> None: ...

    def on_error(self, message: str) -> None: ...

    def on_retrieval_results(self, matches: List[QueryMatch]) -> None: ...


class LiveCaptionService:
    """Application facade used by the API and the command-line scripts."""

    def __init__(
        self,
        settings: AppSettings,
        engine: InferenceEngine,
        frame_source: FrameSource,
        embedder: Embedder,
        vector_store: VectorStore,
        summarizer: Optional[Summarizer] = None,
        sink: Optional[UISink] = None,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.frame_source = frame_source
        self.embedder = embedder
        self.vector_store = vector_store
        self.sink = sink
        self.recorder = CaptionRecorder(embedder, vector_store)
        self.scheduler = CaptureScheduler(
            engine=engine,
            frame_source=frame_source,
            system_prompt=settings.inference.system_prompt,
            prompt=settings.capture.default_prompt,
            frame_capture_delay=settings.capture.frame_capture_delay,
            on_caption_update=sink.on_caption_update if sink is not None else None,
            on_error=sink.on_error if sink is not None else None,
            on_caption_completed=self.recorder.record,
        )
        self.retriever = RetrievalCoordinator(
            embedder=embedder,
            vector_store=vector_store,
            summarizer=summarizer,
            k=settings.retrieval_k,
            on_retrieval_results=sink.on_retrieval_results if sink is not None else None,
        )
        self._loader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-loader")

    def load_model(self, progress: Optional[ProgressCallback] = None) -> None:
        self.engine.load(progress)

    def load_model_in_background(self, progress: Optional[ProgressCallback] = None) -> Future:
        return self._loader.submit(self.engine.load, progress)

    def ask(self, query_text: str, k: Optional[int] = None) -> RetrievalResult:
        return self.retriever.retrieve(query_text, k=k)

    def add_note(self, text: str) -> Future:
        return self.recorder.record_note(text)

    def status(self) -> Dict[str, Any]:
        return {
            "engine_state": self.engine.state.value,
            "engine_error": self.engine.last_error,
            "busy": self.engine.is_busy,
            "running": self.scheduler.is_running,
            "prompt": self.scheduler.prompt,
            "memory_count": len(self.vector_store),
        }

    def close(self) -> None:
        self.scheduler.close(timeout=5.0)
        self.recorder.close()
        self.retriever.close()
        self._loader.shutdown(wait=False)
        self.frame_source.close()


def build_memory_store(settings: AppSettings) -> MemoryStore:
    """Create the memory store, restoring previously persisted memories when present."""

    store_settings = settings.vector_store
    index_path = str(store_settings.index_path)
    store = MemoryStore(dim=store_settings.dim, autosave_path=index_path if store_settings.autosave else None)
    if Path(index_path).exists():
        store.load(index_path)
    return store


def build_service(
    settings: Optional[AppSettings] = None,
    *,
    frame_source: Optional[FrameSource] = None,
    backend: Optional[VisionLanguageBackend] = None,
    embedder: Optional[Embedder] = None,
    vector_store: Optional[VectorStore] = None,
    summarizer: Optional[Summarizer] = None,
    sink: Optional[UISink] = None,
) -> LiveCaptionService:
    """Build a :class:`LiveCaptionService`, defaulting every unspecified part from ``settings``."""

    settings = settings or AppSettings.from_env()
    engine = InferenceEngine(
        backend or TransformersBackend(settings.inference),
        blank_image_size=settings.inference.blank_image_size,
    )
    return LiveCaptionService(
        settings=settings,
        engine=engine,
        frame_source=frame_source or OpenCVFrameSource(settings.capture.camera_index),
        embedder=embedder or build_embedder(settings.embedder),
        vector_store=vector_store if vector_store is not None else build_memory_store(settings),
        summarizer=summarizer or build_summarizer(settings.summarizer),
        sink=sink,
    )
