# Path: core/models/__init__.py
# Purpose: Package initializer for domain model definitions.
# Layer: core/models.
# Details: Exposes dataclasses used across inference, capture, memory, and retrieval layers.

from .domain import (
    CaptionRecord,
    EmbeddingRecord,
    EngineState,
    InferenceRequest,
    QueryMatch,
    QueryResult,
    RetrievalResult,
    StreamEvent,
    StreamEventKind,
)

__all__ = [
    "CaptionRecord",
    "EmbeddingRecord",
    "EngineState",
    "InferenceRequest",
    "QueryMatch",
    "QueryResult",
    "RetrievalResult",
    "StreamEvent",
    "StreamEventKind",
]
