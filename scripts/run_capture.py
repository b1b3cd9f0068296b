# Path: scripts/run_capture.py
# Purpose: CLI tool to caption a live camera (or a still image) and store captions as memories.
# Layer: scripts.
# Details: Loads the model with printed progress, runs the capture loop, and prints captions until interrupted.

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from PIL import Image

from config import AppSettings, setup_logging
from core.capture.frame_source import StaticFrameSource
from core.errors import LoadError
from core.inference.base import progress_fraction
from core.service import build_service


class ConsoleSink:
    """Print caption updates in place and errors on their own line."""

    def on_caption_update(self, text: str) -> None:
        print(f"\r{text[:160]:<160}", end="", flush=True)

    def on_error(self, message: str) -> None:
        print(f"\nError: {message}", flush=True)

    def on_retrieval_results(self, matches) -> None:
        for match in matches:
            print(f"\n[{match.rank}] {match.record.text}")


def _print_progress(message: str) -> None:
    fraction = progress_fraction(message)
    prefix = f"[{fraction:>4.0%}] " if fraction is not None else ""
    print(f"{prefix}{message}", flush=True)


def main() -> None:
    """Run the capture loop until Ctrl+C."""

    parser = argparse.ArgumentParser(description="Live-caption a camera and remember what it saw")
    parser.add_argument("--camera", type=int, default=None, help="OpenCV camera index")
    parser.add_argument("--image", type=Path, default=None, help="Caption a still image instead of a camera")
    parser.add_argument("--prompt", type=str, default=None, help="Instruction sent with every frame")
    parser.add_argument("--delay", type=float, default=None, help="Seconds between capture cycles")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.camera is not None:
        settings.capture.camera_index = args.camera
    if args.prompt:
        settings.capture.default_prompt = args.prompt
    if args.delay is not None:
        settings.capture.frame_capture_delay = args.delay
    setup_logging(settings.log_level, log_file_enabled=settings.log_file_enabled, log_file_path=settings.log_file_path)

    frame_source = StaticFrameSource(Image.open(args.image).convert("RGB")) if args.image else None
    service = build_service(settings, frame_source=frame_source, sink=ConsoleSink())
    try:
        service.load_model(_print_progress)
    except LoadError as exc:
        print(f"Error loading model: {exc}", file=sys.stderr)
        service.close()
        sys.exit(1)

    service.scheduler.start()
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        service.close()
        print(f"{len(service.vector_store)} memories stored in {settings.vector_store.index_path}")


if __name__ == "__main__":
    main()
