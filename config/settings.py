# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for the vision-language engine, capture loop, embedders, memory store, and summarizer.

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "LCM_"
ENV_NESTED_DELIMITER = "__"


class InferenceSettings(BaseModel):
    """Settings describing which vision-language model to load and how to generate with it."""

    model_id: str = Field(default="apple/FastVLM-0.5B", description="Hugging Face model identifier.")
    device: str = Field(default="cpu", description="Target device for model execution.")
    max_new_tokens: int = Field(default=512, description="Upper bound on generated tokens per caption.")
    repetition_penalty: float = Field(default=1.2, description="Penalty applied to repeated tokens during decoding.")
    do_sample: bool = Field(default=False, description="Use sampling instead of greedy decoding.")
    blank_image_size: int = Field(default=25, description="Side length of the blank image used for text-only requests.")
    trust_remote_code: bool = Field(default=True, description="Allow model repositories that ship custom modeling code.")
    system_prompt: str = Field(
        default="You are a helpful visual AI assistant. Respond concisely and accurately to the user's query in one sentence.",
        description="System message prepended to every captioning request.",
    )


class EmbedderSettings(BaseModel):
    """Settings describing which text embedder implementation to use and how to load it."""

    name: str = Field(default="sentence_transformer", description="Identifier of the embedder implementation.")
    model_name: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2", description="Model variant used by the embedder."
    )
    device: str = Field(default="cpu", description="Target device for model execution.")
    dim: int = Field(default=384, description="Dimensionality of produced embeddings.")


class VectorStoreSettings(BaseModel):
    """Settings controlling the memory store dimensionality and persistence path."""

    dim: int = Field(default=384, description="Expected embedding dimensionality for the store.")
    index_path: Path = Field(default=Path("storage/memories/memories.json"), description="Path to the serialized store.")
    autosave: bool = Field(default=True, description="Persist the store after every insert.")


class CaptureSettings(BaseModel):
    """Settings for the continuous capture loop and its default frame source."""

    frame_capture_delay: float = Field(default=0.1, description="Seconds slept between capture cycles.")
    camera_index: int = Field(default=0, description="OpenCV camera index used by the default frame source.")
    default_prompt: str = Field(default="Describe what you see in one sentence.", description="Initial instruction.")


class SummarizerSettings(BaseModel):
    """Settings for the OpenAI-compatible chat endpoint used to summarize retrieved memories."""

    enabled: bool = Field(default=False, description="Call the remote summarizer after retrieval.")
    base_url: str = Field(default="http://localhost:11434/v1", description="Base URL of the chat completions API.")
    model: str = Field(default="llama3.1", description="Model name sent with each request.")
    api_key: Optional[str] = Field(default=None, description="Bearer token, if the endpoint requires one.")
    timeout_seconds: float = Field(default=30.0, description="HTTP timeout for a single summarization call.")
    system_prompt: str = Field(
        default=(
            "You answer questions about what a camera has seen. Use only the timestamped observations "
            "provided as context and say so when they do not contain the answer."
        ),
        description="System message sent to the summarizer.",
    )


class AppSettings(BaseModel):
    """Top-level application settings shared across services and interfaces."""

    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    embedder: EmbedderSettings = Field(default_factory=EmbedderSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    summarizer: SummarizerSettings = Field(default_factory=SummarizerSettings)
    retrieval_k: int = Field(default=5, description="Number of memories retrieved per query.")
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")
    log_file_enabled: bool = Field(default=False, description="Also write logs to a rotating file.")
    log_file_path: Path = Field(default=Path("logs/live_caption_memory.log"), description="Rotating log file path.")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppSettings":
        """Instantiate settings, applying ``LCM_*`` environment overrides when available.

        Nested fields use a double underscore, e.g. ``LCM_SUMMARIZER__BASE_URL``.
        """

        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for key, value in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = key[len(ENV_PREFIX):].lower().split(ENV_NESTED_DELIMITER)
            target = overrides
            for part in path[:-1]:
                target = target.setdefault(part, {})
            target[path[-1]] = value
        # pydantic coerces the string values into the declared field types.
        return cls.model_validate(overrides)


__all__ = [
    "AppSettings",
    "CaptureSettings",
    "EmbedderSettings",
    "InferenceSettings",
    "SummarizerSettings",
    "VectorStoreSettings",
]
