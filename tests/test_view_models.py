from __future__ import annotations

import numpy as np

from core.models.domain import EmbeddingRecord, QueryMatch
from gui.view_models import CaptioningViewModel


def test_error_replaces_caption_until_next_success() -> None:
    view = CaptioningViewModel()
    view.on_caption_update("a desk lamp")
    view.on_error("gpu lost")

    assert view.caption == "Error: gpu lost"
    assert view.error == "gpu lost"

    view.on_caption_update("a desk lamp, switched on")
    assert view.caption == "a desk lamp, switched on"
    assert view.error is None


def test_clear_error_and_retrieval_snapshot() -> None:
    view = CaptioningViewModel()
    view.on_error("camera unplugged")
    view.clear_error()
    record = EmbeddingRecord(id=0, text="T1 : a lamp", vector=np.zeros(2, dtype=np.float32))
    view.on_retrieval_results([QueryMatch(record=record, score=1.0, rank=0)])

    snapshot = view.snapshot()
    assert snapshot["error"] is None
    assert snapshot["retrieval_results"] == ["T1 : a lamp"]
