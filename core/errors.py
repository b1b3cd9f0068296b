# Path: core/errors.py
# Purpose: Define the exception hierarchy shared by the core services.
# Layer: core.
# Details: Separates terminal load failures from per-cycle, per-insert, and best-effort summarization errors.

from __future__ import annotations


class LiveCaptionError(Exception):
    """Base class for all errors raised by the core services."""


class LoadError(LiveCaptionError):
    """Loading the vision-language model failed; terminal until the user retries."""


class InferenceError(LiveCaptionError):
    """A single captioning request failed; the capture loop recovers and continues."""


class EngineNotReadyError(InferenceError):
    """Inference was requested before the model and processor were loaded."""


class EmbeddingError(LiveCaptionError):
    """Embedding a caption, note, or query failed; aborts that insert or query attempt."""


class SummarizationError(LiveCaptionError):
    """The external summarizer failed; retrieved memories remain valid."""


class DimensionMismatchError(ValueError):
    """A vector does not match the fixed dimensionality of the memory store."""


__all__ = [
    "DimensionMismatchError",
    "EmbeddingError",
    "EngineNotReadyError",
    "InferenceError",
    "LiveCaptionError",
    "LoadError",
    "SummarizationError",
]
