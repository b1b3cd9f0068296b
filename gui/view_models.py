# Path: gui/view_models.py
# Purpose: Provide view models mediating between the capture/retrieval services and any front end.
# Layer: gui.
# Details: Holds caption, error, and retrieval display state; implements the UI sink callbacks.

from __future__ import annotations

import threading
from typing import List, Optional

from core.models.domain import QueryMatch


class CaptioningViewModel:
    """Display state for the live caption panel and the memory query panel.

    An error replaces the caption text with ``"Error: <message>"`` until the
    next successful caption overwrites it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.caption: str = ""
        self.error: Optional[str] = None
        self.retrieval_results: List[QueryMatch] = []

    def on_caption_update(self, text: str) -> None:
        with self._lock:
            self.caption = text
            self.error = None

    def on_error(self, message: str) -> None:
        with self._lock:
            self.error = message
            self.caption = f"Error: {message}"

    def on_retrieval_results(self, matches: List[QueryMatch]) -> None:
        with self._lock:
            self.retrieval_results = list(matches)

    def clear_error(self) -> None:
        """Called when the user toggles capturing or edits the prompt."""

        with self._lock:
            self.error = None

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "caption": self.caption,
                "error": self.error,
                "retrieval_results": [match.record.text for match in self.retrieval_results],
            }
