# Path: gui/__init__.py
# Purpose: Package initializer for presentation-layer state.
# Layer: gui.
# Details: Exposes the toolkit-independent captioning view model.

from .view_models import CaptioningViewModel

__all__ = ["CaptioningViewModel"]
