from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from PIL import Image

from core.embedders.hash_embedder import HashEmbedder
from core.inference.base import MSG_LOADING_PROCESSOR, MSG_MODEL_LOADED, VisionLanguageBackend, emit_progress
from core.inference.engine import InferenceEngine
from core.vector_store.memory_store import MemoryStore

DIM = 16


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeBackend(VisionLanguageBackend):
    """Scriptable backend: streams the reply in 3-character fragments."""

    def __init__(self, reply: str = "a person sitting at a desk") -> None:
        self.reply = reply
        self.reply_for: Optional[Callable[[List[Dict[str, str]]], str]] = None
        self.load_error: Optional[Exception] = None
        self.load_delay = 0.0
        self.error: Optional[Exception] = None
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()
        self.load_calls = 0
        self.calls: List[Tuple[Image.Image, List[Dict[str, str]]]] = []
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self, progress=None) -> None:
        self.load_calls += 1
        emit_progress(progress, MSG_LOADING_PROCESSOR)
        if self.load_delay:
            time.sleep(self.load_delay)
        if self.load_error is not None:
            raise self.load_error
        self._loaded = True
        emit_progress(progress, MSG_MODEL_LOADED)

    def generate(self, image, messages, on_text) -> str:
        self.calls.append((image, messages))
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.error is not None:
            raise self.error
        reply = self.reply_for(messages) if self.reply_for is not None else self.reply
        for start in range(0, len(reply), 3):
            on_text(reply[start : start + 3])
        return f"  {reply}\n"


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def engine(backend: FakeBackend) -> InferenceEngine:
    engine = InferenceEngine(backend, blank_image_size=25)
    engine.load()
    return engine


@pytest.fixture
def frame() -> Image.Image:
    return Image.new("RGB", (64, 48), (120, 80, 40))


@pytest.fixture
def embedder() -> HashEmbedder:
    return HashEmbedder(dim=DIM)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(dim=DIM)
