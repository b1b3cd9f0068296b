# Path: core/inference/__init__.py
# Purpose: Package initializer for the vision-language inference layer.
# Layer: core/inference.
# Details: Exposes the backend interface, the transformers backend, and the single-flight engine.

from .base import ModelHandle, VisionLanguageBackend, progress_fraction
from .engine import InferenceEngine
from .transformers_backend import TransformersBackend

__all__ = ["InferenceEngine", "ModelHandle", "TransformersBackend", "VisionLanguageBackend", "progress_fraction"]
