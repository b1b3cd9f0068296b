from __future__ import annotations

import itertools
import threading
import time
from typing import List

import pytest

from conftest import FakeBackend, wait_for
from core.capture.frame_source import StaticFrameSource
from core.capture.scheduler import CaptureScheduler
from core.inference.engine import InferenceEngine
from core.models.domain import CaptionRecord


class Recorder:
    def __init__(self) -> None:
        self.captions: List[str] = []
        self.errors: List[str] = []
        self.completed: List[CaptionRecord] = []


@pytest.fixture
def sinks() -> Recorder:
    return Recorder()


def make_scheduler(engine: InferenceEngine, frame, sinks: Recorder, prompt: str = "describe") -> CaptureScheduler:
    return CaptureScheduler(
        engine=engine,
        frame_source=StaticFrameSource(frame),
        system_prompt="system",
        prompt=prompt,
        frame_capture_delay=0.01,
        on_caption_update=sinks.captions.append,
        on_error=sinks.errors.append,
        on_caption_completed=sinks.completed.append,
    )


def test_running_loop_dispatches_partials_and_final_captions(engine, frame, sinks) -> None:
    scheduler = make_scheduler(engine, frame, sinks)
    scheduler.start()
    try:
        assert wait_for(lambda: len(sinks.completed) >= 2)
    finally:
        scheduler.close(timeout=2)

    assert sinks.completed[0].text == "a person sitting at a desk"
    assert "a person sitting at a desk" in sinks.captions
    assert any(len(text) < len("a person sitting at a desk") for text in sinks.captions)
    assert sinks.errors == []


def test_prompt_edit_applies_to_next_cycle_without_restart(engine, backend: FakeBackend, frame, sinks) -> None:
    backend.reply_for = lambda messages: messages[-1]["content"].replace("<image>", "saw: ")
    scheduler = make_scheduler(engine, frame, sinks)
    session = scheduler.start()
    try:
        assert wait_for(lambda: any(r.text == "saw: describe" for r in sinks.completed))
        scheduler.set_prompt("count the cups")
        assert wait_for(lambda: any(r.text == "saw: count the cups" for r in sinks.completed))
        assert scheduler.session is session
        assert session.active_prompt == "count the cups"
    finally:
        scheduler.close(timeout=2)


def test_rebind_replaces_session(engine, frame, sinks) -> None:
    scheduler = make_scheduler(engine, frame, sinks)
    first = scheduler.start()
    second = scheduler.rebind("read the sign")
    try:
        assert first.cancelled
        assert second is not first
        assert second.active_prompt == "read the sign"
        assert scheduler.is_running
    finally:
        scheduler.close(timeout=2)


def test_inference_errors_are_reported_and_loop_continues(engine, backend: FakeBackend, frame, sinks) -> None:
    backend.error = RuntimeError("gpu lost")
    scheduler = make_scheduler(engine, frame, sinks)
    scheduler.start()
    try:
        assert wait_for(lambda: len(sinks.errors) >= 2)
        assert sinks.errors[0] == "gpu lost"
        backend.error = None
        assert wait_for(lambda: len(sinks.completed) >= 1)
        assert scheduler.is_running
    finally:
        scheduler.close(timeout=2)


def test_blank_reply_is_not_recorded_as_a_caption(engine, backend: FakeBackend, frame, sinks) -> None:
    backend.reply = "   "
    scheduler = make_scheduler(engine, frame, sinks)
    scheduler.start()
    try:
        assert wait_for(lambda: len(backend.calls) >= 3)
    finally:
        scheduler.close(timeout=2)

    assert engine.generation_completed
    assert sinks.completed == []
    assert sinks.errors == []



def test_stop_discards_result_of_in_flight_inference(engine, backend: FakeBackend, frame, sinks) -> None:
    backend.gate = threading.Event()
    scheduler = make_scheduler(engine, frame, sinks)
    scheduler.start()
    assert backend.entered.wait(2)

    scheduler.stop()
    backend.gate.set()
    assert wait_for(lambda: not engine.is_busy)
    scheduler.close(timeout=2)

    assert sinks.captions == []
    assert sinks.completed == []
    assert len(backend.calls) == 1


def test_toggle_off_and_on_keeps_captions_ordered(engine, backend: FakeBackend, frame, sinks) -> None:
    counter = itertools.count()
    backend.reply_for = lambda messages: f"caption {next(counter)}"
    scheduler = make_scheduler(engine, frame, sinks)

    assert scheduler.toggle() is True
    assert wait_for(lambda: len(sinks.completed) >= 3)
    assert scheduler.toggle() is False
    stopped_at = len(sinks.completed)
    time.sleep(0.05)
    assert len(sinks.completed) == stopped_at

    assert scheduler.toggle() is True
    assert wait_for(lambda: len(sinks.completed) >= stopped_at + 3)
    scheduler.close(timeout=2)

    numbers = [int(record.text.split()[-1]) for record in sinks.completed]
    assert numbers == sorted(set(numbers))


def test_loop_waits_for_engine_and_ready_frames(backend: FakeBackend, frame, sinks) -> None:
    engine = InferenceEngine(backend)
    source = StaticFrameSource(frame, playing=False)
    scheduler = CaptureScheduler(
        engine, source, "system", "describe", 0.01,
        on_caption_update=sinks.captions.append, on_error=sinks.errors.append,
    )
    scheduler.start()
    try:
        time.sleep(0.05)
        engine.load()
        time.sleep(0.05)
        assert backend.calls == []
        assert sinks.errors == []

        source.playing = True
        assert wait_for(lambda: len(sinks.captions) > 0)
    finally:
        scheduler.close(timeout=2)


def test_failing_listener_does_not_stop_loop(engine, frame) -> None:
    completed: List[CaptionRecord] = []

    def _explode(text: str) -> None:
        raise RuntimeError("ui gone")

    scheduler = CaptureScheduler(
        engine, StaticFrameSource(frame), "system", "describe", 0.01,
        on_caption_update=_explode, on_caption_completed=completed.append,
    )
    scheduler.start()
    try:
        assert wait_for(lambda: len(completed) >= 2)
    finally:
        scheduler.close(timeout=2)
