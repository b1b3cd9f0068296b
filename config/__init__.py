# Path: config/__init__.py
# Purpose: Package initializer for configuration module.
# Layer: config.
# Details: Exposes settings models and logging setup for application-wide configuration.

from .logging_config import setup_logging
from .settings import (
    AppSettings,
    CaptureSettings,
    EmbedderSettings,
    InferenceSettings,
    SummarizerSettings,
    VectorStoreSettings,
)

__all__ = [
    "AppSettings",
    "CaptureSettings",
    "EmbedderSettings",
    "InferenceSettings",
    "SummarizerSettings",
    "VectorStoreSettings",
    "setup_logging",
]
