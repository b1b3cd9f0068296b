# Path: core/capture/__init__.py
# Purpose: Package initializer for frame sources and the capture loop.
# Layer: core/capture.
# Details: Exposes the FrameSource contract, its implementations, and the capture scheduler.

from .frame_source import FrameSource, OpenCVFrameSource, StaticFrameSource
from .scheduler import CaptureScheduler, CaptureSession

__all__ = ["CaptureScheduler", "CaptureSession", "FrameSource", "OpenCVFrameSource", "StaticFrameSource"]
