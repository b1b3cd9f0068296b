# Path: core/indexing/__init__.py
# Purpose: Package initializer for memory indexing utilities.
# Layer: core/indexing.
# Details: Exposes the caption recorder and the bulk note ingestor.

from .captions import CaptionRecorder
from .index_builder import NoteIngestor

__all__ = ["CaptionRecorder", "NoteIngestor"]
