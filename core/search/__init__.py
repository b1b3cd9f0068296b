# Path: core/search/__init__.py
# Purpose: Package initializer for memory retrieval and summarization.
# Layer: core/search.
# Details: Exposes the retrieval coordinator and summarizer implementations.

from .pipeline import RetrievalCoordinator
from .summarizer import ChatCompletionSummarizer, NullSummarizer, Summarizer, build_summarizer

__all__ = [
    "ChatCompletionSummarizer",
    "NullSummarizer",
    "RetrievalCoordinator",
    "Summarizer",
    "build_summarizer",
]
