# Path: core/inference/base.py
# Purpose: Define the VisionLanguageBackend interface and load-progress helpers.
# Layer: core/inference.
# Details: Backends own the model handle; the engine layers admission control and streaming on top.

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from PIL import Image

ProgressCallback = Callable[[str], None]
TextCallback = Callable[[str], None]

MSG_LOADING_PROCESSOR = "Loading processor..."
MSG_PROCESSOR_LOADED = "Processor loaded. Loading model..."
MSG_MODEL_LOADED = "Model loaded successfully!"
MSG_ALREADY_LOADED = "Model already loaded!"

_PROGRESS_FRACTIONS = [
    (MSG_LOADING_PROCESSOR, 0.10),
    (MSG_PROCESSOR_LOADED, 0.20),
    (MSG_MODEL_LOADED, 0.80),
    (MSG_ALREADY_LOADED, 1.0),
]


def progress_fraction(message: str) -> Optional[float]:
    """Map a load progress message to the loading-bar fraction it represents, if known."""

    for prefix, fraction in _PROGRESS_FRACTIONS:
        if message.startswith(prefix.rstrip(".!")):
            return fraction
    return None


def emit_progress(progress: Optional[ProgressCallback], message: str) -> None:
    if progress is not None:
        progress(message)


@dataclass(frozen=True)
class ModelHandle:
    """Loaded processor/model pair. Created once by ``load`` and never mutated."""

    processor: Any
    model: Any
    device: str


class VisionLanguageBackend(ABC):
    """Abstract base class for vision-language model backends."""

    @abstractmethod
    def load(self, progress: Optional[ProgressCallback] = None) -> None:
        """Load processor and model, reporting free-text status messages to ``progress``."""

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """True once ``load`` has completed successfully."""

    @abstractmethod
    def generate(self, image: Image.Image, messages: List[Dict[str, str]], on_text: TextCallback) -> str:
        """Generate a reply for a chat conversation about ``image``.

        ``on_text`` receives each newly decoded text fragment in order. The
        return value is the full decoded reply.
        """
