# Path: core/capture/frame_source.py
# Purpose: Supply the most recent decoded video frame on demand.
# Layer: core/capture.
# Details: Defines the polled FrameSource contract plus OpenCV webcam and static-image implementations.

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional, Union

from PIL import Image

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Polled provider of the newest frame; the capture loop never receives pushes."""

    @abstractmethod
    def current_frame(self) -> Optional[Image.Image]:
        """Return the newest decoded frame, or None when nothing is available."""

    @abstractmethod
    def is_ready(self) -> bool:
        """True when a frame is decoded, the source is playing, and it has non-zero dimensions."""

    def close(self) -> None:
        """Release any underlying device."""


class StaticFrameSource(FrameSource):
    """Frame source that always returns the same image (or none)."""

    def __init__(self, image: Optional[Image.Image] = None, playing: bool = True) -> None:
        self.image = image
        self.playing = playing

    def current_frame(self) -> Optional[Image.Image]:
        return self.image

    def is_ready(self) -> bool:
        return self.playing and self.image is not None and self.image.width > 0 and self.image.height > 0


class OpenCVFrameSource(FrameSource):
    """Read frames from a camera index or video path with OpenCV.

    A daemon reader thread keeps only the newest frame, so slow consumers
    never see a backlog of stale frames.
    """

    def __init__(self, source: Union[int, str] = 0, width: Optional[int] = None, height: Optional[int] = None) -> None:
        import cv2

        self._cv2 = cv2
        self.source = source
        self._capture = cv2.VideoCapture(source)
        if not self._capture.isOpened():
            self._capture.release()
            raise RuntimeError(f"Could not open video source {source!r}.")
        if width:
            self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        if height:
            self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        # Reduce buffering for lower latency.
        self._capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._lock = threading.Lock()
        self._frame: Optional[Image.Image] = None
        self._playing = threading.Event()
        self._playing.set()
        self._stopped = threading.Event()
        self._reader = threading.Thread(target=self._read_loop, name="frame-reader", daemon=True)
        self._reader.start()

    def _read_loop(self) -> None:
        while not self._stopped.is_set():
            if not self._playing.wait(timeout=0.1):
                continue
            ok, frame = self._capture.read()
            if not ok:
                logger.warning("Video source %r returned no frame; stopping reader", self.source)
                self._playing.clear()
                break
            rgb = self._cv2.cvtColor(frame, self._cv2.COLOR_BGR2RGB)
            with self._lock:
                self._frame = Image.fromarray(rgb)

    def pause(self) -> None:
        self._playing.clear()

    def resume(self) -> None:
        if self.ended:
            logger.warning("Video source %r has ended; resume has no effect", self.source)
            return
        self._playing.set()

    @property
    def ended(self) -> bool:
        """True once the reader thread has stopped, e.g. at end of a video file."""

        return not self._reader.is_alive()

    def current_frame(self) -> Optional[Image.Image]:
        with self._lock:
            return self._frame

    def is_ready(self) -> bool:
        if self.ended or not self._playing.is_set():
            return False
        frame = self.current_frame()
        return frame is not None and frame.width > 0 and frame.height > 0

    def close(self) -> None:
        self._stopped.set()
        self._reader.join(timeout=1.0)
        self._capture.release()
