# Path: scripts/serve_api.py
# Purpose: Serve the HTTP API with uvicorn.
# Layer: scripts.
# Details: Builds the service and view model from environment settings and starts loading the model.

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import uvicorn

from api.app import create_app
from config import AppSettings, setup_logging
from core.service import build_service
from gui.view_models import CaptioningViewModel


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the live caption memory API")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    settings = AppSettings.from_env()
    setup_logging(settings.log_level, log_file_enabled=settings.log_file_enabled, log_file_path=settings.log_file_path)

    view_model = CaptioningViewModel()
    service = build_service(settings, sink=view_model)
    service.load_model_in_background()
    try:
        uvicorn.run(create_app(service, view_model), host=args.host, port=args.port)
    finally:
        service.close()


if __name__ == "__main__":
    main()
