# Path: core/capture/scheduler.py
# Purpose: Drive the repeating sample -> infer -> dispatch capture cycle.
# Layer: core/capture.
# Details: Owns capture sessions, their cancellation tokens, and the worker thread that runs each session.

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from core.errors import InferenceError
from core.inference.engine import InferenceEngine
from core.models.domain import CaptionRecord

from .frame_source import FrameSource

logger = logging.getLogger(__name__)

CaptionCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]
CompletedCallback = Callable[[CaptionRecord], None]


@dataclass
class CaptureSession:
    """One running (or paused) instance of the capture loop.

    ``active_prompt`` is read at the start of every cycle, so editing it
    takes effect on the next cycle without restarting the loop.
    """

    session_id: int
    active_prompt: str
    running: bool = True
    cancel_token: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.is_set()

    def cancel(self) -> None:
        self.running = False
        self.cancel_token.set()


class CaptureScheduler:
    """Run capture sessions against an :class:`InferenceEngine` and a polled :class:`FrameSource`.

    Every session runs on its own daemon thread and stops at its next
    cancellation check. Cancelling never interrupts an inference already
    inside the engine; its result is dropped instead. Callbacks are fired
    under a dispatch lock that :meth:`stop` also takes, so once ``stop``
    returns the cancelled session dispatches nothing further.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        frame_source: FrameSource,
        system_prompt: str,
        prompt: str,
        frame_capture_delay: float = 0.1,
        on_caption_update: Optional[CaptionCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_caption_completed: Optional[CompletedCallback] = None,
    ) -> None:
        self.engine = engine
        self.frame_source = frame_source
        self.system_prompt = system_prompt
        self.frame_capture_delay = frame_capture_delay
        self.on_caption_update = on_caption_update
        self.on_error = on_error
        self.on_caption_completed = on_caption_completed

        self._prompt = prompt
        self._session: Optional[CaptureSession] = None
        self._thread: Optional[threading.Thread] = None
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    @property
    def session(self) -> Optional[CaptureSession]:
        with self._lock:
            return self._session

    @property
    def is_running(self) -> bool:
        session = self.session
        return session is not None and session.running

    @property
    def prompt(self) -> str:
        with self._lock:
            return self._session.active_prompt if self._session is not None else self._prompt

    def start(self) -> CaptureSession:
        """Start capturing, or return the live session when already running."""

        with self._lock:
            current = self._session
            if current is not None and current.running:
                return current
            if current is not None:
                current.cancel()
            session = CaptureSession(session_id=next(self._ids), active_prompt=self.prompt)
            self._session = session
            thread = threading.Thread(
                target=self._run, args=(session,), name=f"capture-session-{session.session_id}", daemon=True
            )
            self._thread = thread
            thread.start()
        logger.info("Capture session %s started", session.session_id)
        return session

    def stop(self) -> None:
        """Pause capturing; an inference already in flight finishes but its result is discarded."""

        with self._lock:
            session = self._session
            if session is not None and session.running:
                session.cancel()
                logger.info("Capture session %s stopped", session.session_id)

    def toggle(self) -> bool:
        """Flip between running and paused; returns the new running state."""

        with self._lock:
            if self.is_running:
                self.stop()
                return False
            self.start()
            return True

    def set_prompt(self, prompt: str) -> None:
        """Change the instruction used from the next cycle on, without restarting the loop."""

        with self._lock:
            self._prompt = prompt
            if self._session is not None:
                self._session.active_prompt = prompt

    def rebind(self, prompt: str) -> CaptureSession:
        """Replace the current session with a new one bound to ``prompt``."""

        with self._lock:
            if self._session is not None:
                self._session.cancel()
            self._prompt = prompt
            self._session = None
            return self.start()

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop capturing and wait up to ``timeout`` seconds for the worker thread to exit."""

        with self._lock:
            self.stop()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self, session: CaptureSession) -> None:
        token = session.cancel_token
        while not token.is_set():
            try:
                if self.engine.is_ready and self.frame_source.is_ready():
                    self._cycle(session)
            except Exception as exc:  # noqa: BLE001 - a broken cycle must not end the loop
                logger.exception("Capture cycle failed")
                self._dispatch(session, self.on_error, str(exc) or exc.__class__.__name__)
            if token.is_set():
                break
            token.wait(self.frame_capture_delay)
        logger.debug("Capture session %s exited", session.session_id)

    def _cycle(self, session: CaptureSession) -> None:
        frame = self.frame_source.current_frame()
        if frame is None:
            return
        prompt = session.active_prompt

        def _on_partial(text: str) -> None:
            self._dispatch(session, self.on_caption_update, text)

        try:
            result = self.engine.run_inference(frame, self.system_prompt, prompt, _on_partial)
        except InferenceError as exc:
            logger.warning("Error processing frame: %s", exc)
            self._dispatch(session, self.on_error, str(exc))
            return

        if not result:
            return
        if self._dispatch(session, self.on_caption_update, result):
            self._dispatch(session, self.on_caption_completed, CaptionRecord.now(result))

    def _dispatch(self, session: CaptureSession, callback: Optional[Callable[[Any], None]], value: Any) -> bool:
        """Fire ``callback`` unless ``session`` was cancelled; returns whether the session is still live."""

        with self._lock:
            if session.cancelled:
                return False
            if callback is None:
                return True
            try:
                callback(value)
            except Exception:  # noqa: BLE001 - listener failures stay out of the loop
                logger.exception("Capture listener %r failed", callback)
            return True
