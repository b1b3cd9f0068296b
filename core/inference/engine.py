# Path: core/inference/engine.py
# Purpose: Own the loaded vision-language model and admit at most one inference at a time.
# Layer: core/inference.
# Details: Provides idempotent loading, single-flight run_inference with partial-text callbacks, and an event stream.

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Dict, Iterator, List, Optional, Tuple

from PIL import Image

from core.errors import EngineNotReadyError, InferenceError, LoadError
from core.models.domain import EngineState, InferenceRequest, StreamEvent, StreamEventKind

from .base import MSG_ALREADY_LOADED, ProgressCallback, TextCallback, VisionLanguageBackend, emit_progress

logger = logging.getLogger(__name__)

IMAGE_TOKEN = "<image>"


class InferenceEngine:
    """Service object wrapping a :class:`VisionLanguageBackend`.

    State moves ``UNLOADED -> LOADING -> READY``; a failed load returns to
    ``UNLOADED``. Inference requests that arrive while another one is running
    are dropped, never queued: :meth:`run_inference` returns an empty string
    for them.
    """

    def __init__(self, backend: VisionLanguageBackend, blank_image_size: int = 25) -> None:
        self._backend = backend
        self.blank_image_size = blank_image_size
        self._state_lock = threading.Lock()
        self._state = EngineState.UNLOADED
        self._load_future: Optional[Future] = None
        self._last_error: Optional[str] = None
        self._busy = threading.Lock()
        self._generation_completed = False

    @property
    def state(self) -> EngineState:
        with self._state_lock:
            return self._state

    @property
    def is_ready(self) -> bool:
        return self.state is EngineState.READY and self._backend.is_loaded

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def last_error(self) -> Optional[str]:
        with self._state_lock:
            return self._last_error

    @property
    def generation_completed(self) -> bool:
        """True once the most recently admitted request produced its final text."""

        return self._generation_completed

    def load(self, progress: Optional[ProgressCallback] = None, timeout: Optional[float] = None) -> None:
        """Load the model, sharing one in-flight load between concurrent callers.

        Raises :class:`LoadError` when loading fails; the engine is then back
        in ``UNLOADED`` and a later call starts a fresh attempt.
        """

        with self._state_lock:
            if self._state is EngineState.READY:
                future = None
                owner = False
            elif self._load_future is not None:
                future = self._load_future
                owner = False
            else:
                future = Future()
                self._load_future = future
                self._state = EngineState.LOADING
                self._last_error = None
                owner = True

        if future is None:
            emit_progress(progress, MSG_ALREADY_LOADED)
            return
        if not owner:
            future.result(timeout=timeout)
            return

        try:
            self._backend.load(progress)
        except Exception as exc:  # noqa: BLE001 - every load failure becomes a LoadError
            error = exc if isinstance(exc, LoadError) else LoadError(f"Error loading model: {exc}")
            with self._state_lock:
                self._state = EngineState.UNLOADED
                self._load_future = None
                self._last_error = str(exc)
            logger.error("Error loading model: %s", exc)
            future.set_exception(error)
            if error is exc:
                raise
            raise error from exc

        with self._state_lock:
            self._state = EngineState.READY
            self._load_future = None
        logger.info("Vision-language model ready")
        future.set_result(None)

    def run_inference(
        self,
        frame: Optional[Image.Image],
        system_prompt: str,
        instruction: str,
        on_partial_text: Optional[TextCallback] = None,
    ) -> str:
        """Caption ``frame`` (or answer ``instruction`` alone when ``frame`` is None).

        ``on_partial_text`` receives the cumulative decoded text so far. Returns
        the final trimmed text, or ``""`` when another inference is in flight.
        """

        text = self._run(InferenceRequest(frame, system_prompt, instruction), on_partial_text)
        return "" if text is None else text

    def stream(
        self,
        frame: Optional[Image.Image],
        system_prompt: str,
        instruction: str,
        maxsize: int = 256,
    ) -> Iterator[StreamEvent]:
        """Yield partial-text deltas followed by exactly one terminal event.

        The terminal event is ``completed`` (final text), ``skipped`` (another
        inference was in flight) or ``error``. Generation runs on a worker
        thread and blocks while the bounded buffer is full; closing the
        iterator early lets the worker finish without blocking.
        """

        request = InferenceRequest(frame, system_prompt, instruction)
        events: "queue.Queue[StreamEvent]" = queue.Queue(maxsize=maxsize)
        abandoned = threading.Event()
        emitted = {"text": ""}

        def _put(event: StreamEvent) -> None:
            while not abandoned.is_set():
                try:
                    events.put(event, timeout=0.1)
                    return
                except queue.Full:
                    continue

        def _on_partial(cumulative: str) -> None:
            previous = emitted["text"]
            delta = cumulative[len(previous):] if cumulative.startswith(previous) else cumulative
            emitted["text"] = cumulative
            if delta:
                _put(StreamEvent(StreamEventKind.PARTIAL, delta))

        def _worker() -> None:
            try:
                text = self._run(request, _on_partial)
            except InferenceError as exc:
                _put(StreamEvent(StreamEventKind.ERROR, str(exc)))
                return
            if text is None:
                _put(StreamEvent(StreamEventKind.SKIPPED))
            else:
                _put(StreamEvent(StreamEventKind.COMPLETED, text))

        worker = threading.Thread(target=_worker, name="inference-stream", daemon=True)
        worker.start()
        try:
            while True:
                event = events.get()
                yield event
                if event.is_terminal:
                    break
        finally:
            abandoned.set()

    def _run(self, request: InferenceRequest, on_partial_text: Optional[TextCallback]) -> Optional[str]:
        if not self._busy.acquire(blocking=False):
            logger.debug("Inference already running, skipping frame")
            return None
        try:
            self._generation_completed = False
            if not self.is_ready:
                raise EngineNotReadyError("Model/processor not loaded")

            image, messages = self._build_inputs(request)
            fragments: List[str] = []

            def _on_text(fragment: str) -> None:
                if not fragment:
                    return
                fragments.append(fragment)
                if on_partial_text is not None:
                    on_partial_text("".join(fragments).strip())

            try:
                final = self._backend.generate(image, messages, _on_text)
            except InferenceError:
                raise
            except Exception as exc:  # noqa: BLE001 - backend failures are per-request errors
                raise InferenceError(str(exc)) from exc

            self._generation_completed = True
            return final.strip()
        finally:
            self._busy.release()

    def _build_inputs(self, request: InferenceRequest) -> Tuple[Image.Image, List[Dict[str, str]]]:
        if request.frame is not None:
            image = request.frame.convert("RGB")
            content = f"{IMAGE_TOKEN}{request.instruction}"
        else:
            # A blank placeholder keeps text-only instructions on the same prompting path.
            size = self.blank_image_size
            image = Image.new("RGB", (size, size), (0, 0, 0))
            content = request.instruction
        messages = [
            {"role": "system", "content": request.system_prompt},
            {"role": "user", "content": content},
        ]
        return image, messages
